"""Tests for extracting the templated image reference from compose files."""

import logging

import pytest

from errors import NotFoundError
from manifest_utils import ManifestReference, extract_repository, read_manifest


COMPOSE = """\
services:
  calibre:
    image: linuxserver/calibre:${IMAGE_TAG}
    restart: unless-stopped
  db:
    image: postgres:16
"""


class TestSingleMatch:

    @pytest.mark.parametrize('line', [
        'image: linuxserver/calibre:${IMAGE_TAG}',
        "    image: 'linuxserver/calibre:${IMAGE_TAG}'",
        '\timage: "linuxserver/calibre:${IMAGE_TAG}"   ',
        'IMAGE:linuxserver/calibre:${IMAGE_TAG}',
    ])
    def test_quoting_and_padding(self, line):
        ref = extract_repository([line], 'IMAGE_TAG')
        assert ref == ManifestReference('linuxserver', 'calibre')

    def test_separators_in_tokens(self):
        ref = extract_repository(['image: my.org_x/web-app.v2:${TAG}'], 'TAG')
        assert ref.namespace == 'my.org_x'
        assert ref.repository == 'web-app.v2'
        assert str(ref) == 'my.org_x/web-app.v2'

    def test_full_compose_file(self):
        ref = extract_repository(COMPOSE.splitlines(), 'IMAGE_TAG')
        assert ref == ManifestReference('linuxserver', 'calibre')


class TestNoMatch:

    def test_empty_manifest(self):
        with pytest.raises(NotFoundError, match='IMAGE_TAG'):
            extract_repository([], 'IMAGE_TAG')

    def test_other_variable_name(self):
        with pytest.raises(NotFoundError):
            extract_repository(COMPOSE.splitlines(), 'OTHER_TAG')

    @pytest.mark.parametrize('line', [
        'image: calibre:${IMAGE_TAG}',                    # no namespace
        'image: a/b/c:${IMAGE_TAG}',                      # registry prefix
        'image: linuxserver/calibre:latest',              # not templated
        'image: -bad/calibre:${IMAGE_TAG}',               # leading separator
        'image: bad./calibre:${IMAGE_TAG}',               # trailing separator
        'image: my..org/calibre:${IMAGE_TAG}',            # consecutive separators
        'image: LinuxServer/calibre:${IMAGE_TAG}',        # uppercase
        'image: "linuxserver/calibre:${IMAGE_TAG}\'',     # mismatched quotes
        'image: linuxserver/calibre:${IMAGE_TAG} # pin',  # trailing text
        'image: linuxserver/calibre:${IMAGE_TAG_X}',
    ])
    def test_rejected_shapes(self, line):
        with pytest.raises(NotFoundError):
            extract_repository([line], 'IMAGE_TAG')


class TestMultipleMatches:

    def test_first_match_wins_with_warning(self, caplog):
        lines = [
            'image: linuxserver/calibre:${IMAGE_TAG}',
            'image: linuxserver/sonarr:${IMAGE_TAG}',
        ]
        with caplog.at_level(logging.WARNING, logger='manifest_utils'):
            ref = extract_repository(lines, 'IMAGE_TAG')

        assert ref == ManifestReference('linuxserver', 'calibre')
        assert 'linuxserver/calibre' in caplog.text
        assert 'linuxserver/sonarr' in caplog.text

    def test_identical_matches_are_silent(self, caplog):
        lines = ['image: linuxserver/calibre:${IMAGE_TAG}'] * 2
        with caplog.at_level(logging.WARNING, logger='manifest_utils'):
            ref = extract_repository(lines, 'IMAGE_TAG')

        assert ref == ManifestReference('linuxserver', 'calibre')
        assert caplog.records == []


class TestReadManifest:

    def test_reads_lines(self, tmp_path):
        path = tmp_path / 'docker-compose.yml'
        path.write_text(COMPOSE)
        assert read_manifest(path)[2] == '    image: linuxserver/calibre:${IMAGE_TAG}'

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotFoundError):
            read_manifest(tmp_path / 'missing.yml')
