from __future__ import annotations

import os

import pytest

from filedrop.services.errors import InvalidPath
from filedrop.services.paths import PathResolver, normalize_relative


def test_empty_path_resolves_to_root(tmp_path):
    resolver = PathResolver(tmp_path)

    for raw in ('', None, '.', './'):
        resolved = resolver.resolve(raw)
        assert resolved.absolute == resolver.root
        assert resolved.relative == ''
        assert resolved.is_root


@pytest.mark.parametrize(
    'raw',
    [
        '..',
        '../',
        '../../etc/passwd',
        'docs/../../secret',
        'a/b/../../../c',
        '..\\..\\windows',
        './../x',
    ],
)
def test_traversal_is_rejected(tmp_path, raw):
    resolver = PathResolver(tmp_path / 'root')

    with pytest.raises(InvalidPath):
        resolver.resolve(raw)


@pytest.mark.parametrize('raw', ['/etc/passwd', '//server/share', '\\windows', 'C:/Windows', 'c:evil'])
def test_absolute_paths_are_rejected(tmp_path, raw):
    with pytest.raises(InvalidPath):
        PathResolver(tmp_path).resolve(raw)


def test_null_byte_is_rejected(tmp_path):
    with pytest.raises(InvalidPath):
        PathResolver(tmp_path).resolve('docs/\x00evil')


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [
        ('docs', 'docs'),
        ('docs/', 'docs'),
        ('docs//2024/./report.pdf', 'docs/2024/report.pdf'),
        ('docs/tmp/../final', 'docs/final'),
        ('docs\\2024', 'docs/2024'),
        ('a/..', ''),
    ],
)
def test_normalization(raw, expected):
    assert normalize_relative(raw) == expected


def test_resolved_paths_never_leave_root(tmp_path):
    resolver = PathResolver(tmp_path / 'root')
    segments = ['..', 'a', '.', 'b', '..', '..', '..', 'c']

    for depth in range(1, len(segments) + 1):
        raw = '/'.join(segments[:depth])
        try:
            resolved = resolver.resolve(raw)
        except InvalidPath:
            continue
        assert resolved.absolute == resolver.root or resolver.root in resolved.absolute.parents


def test_symlink_escape_is_rejected(tmp_path):
    root = tmp_path / 'root'
    outside = tmp_path / 'outside'
    root.mkdir()
    outside.mkdir()
    (outside / 'secret.txt').write_text('top secret')
    os.symlink(outside, root / 'link')

    resolver = PathResolver(root)

    with pytest.raises(InvalidPath):
        resolver.resolve('link')
    with pytest.raises(InvalidPath):
        resolver.resolve('link/secret.txt')


def test_symlink_inside_root_is_allowed(tmp_path):
    root = tmp_path / 'root'
    (root / 'real').mkdir(parents=True)
    os.symlink(root / 'real', root / 'alias')

    resolved = PathResolver(root).resolve('alias')

    assert resolved.relative == 'alias'
    assert resolved.absolute == PathResolver(root).root / 'alias'


def test_join_stays_below_parent(tmp_path):
    resolver = PathResolver(tmp_path)
    parent = resolver.resolve('docs')

    assert resolver.join(parent, 'a/b.txt').relative == 'docs/a/b.txt'
    assert resolver.join(parent, 'x/../b.txt').relative == 'docs/b.txt'
    with pytest.raises(InvalidPath):
        resolver.join(parent, '../../outside.txt')
    with pytest.raises(InvalidPath):
        resolver.join(parent, 'x/..')



def test_resolve_entry_keeps_final_symlink_unresolved(tmp_path):
    root = tmp_path / 'root'
    outside = tmp_path / 'outside'
    (root / 'docs').mkdir(parents=True)
    outside.mkdir()
    os.symlink(outside, root / 'docs' / 'link')
    resolver = PathResolver(root)

    entry = resolver.resolve_entry('docs/link')

    assert entry.relative == 'docs/link'
    assert entry.absolute == resolver.root / 'docs' / 'link'
    assert entry.absolute.is_symlink()
    with pytest.raises(InvalidPath):
        resolver.resolve_entry('docs/link/inner.txt')
    with pytest.raises(InvalidPath):
        resolver.resolve_entry('../outside')
    assert resolver.resolve_entry('').is_root
