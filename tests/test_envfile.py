"""Tests for the single-key env file."""

from envfile import read_env_value, write_env_file


def test_write_round_trip(tmp_path):
    path = tmp_path / '.env'
    write_env_file(path, 'IMAGE_TAG', 'v3.4')

    assert path.read_text(encoding='ascii') == 'IMAGE_TAG=v3.4\n'
    assert path.read_text().splitlines() == ['IMAGE_TAG=v3.4']
    assert not (tmp_path / '.env.tmp').exists()


def test_write_overwrites_existing_content(tmp_path):
    path = tmp_path / '.env'
    path.write_text('OTHER=1\nIMAGE_TAG=v1.0\n')
    write_env_file(path, 'IMAGE_TAG', 'v1.1')

    assert path.read_text() == 'IMAGE_TAG=v1.1\n'


def test_read_value(tmp_path):
    path = tmp_path / '.env'
    path.write_text('# pinned\nOTHER=1\nIMAGE_TAG = v2.3\n')

    assert read_env_value(path, 'IMAGE_TAG') == 'v2.3'
    assert read_env_value(path, 'MISSING') is None


def test_read_missing_file(tmp_path):
    assert read_env_value(tmp_path / '.env', 'IMAGE_TAG') is None
