"""Tests for search path lookup and output path validation."""

import pytest

from NuEventGen.utils.path_utils import (
    SEARCH_PATH_ENV,
    PathValidationError,
    SearchPath,
    validate_output_path,
    validate_path,
)


@pytest.fixture
def two_dirs(tmp_path):
    first, second = tmp_path / 'first', tmp_path / 'second'
    first.mkdir()
    second.mkdir()
    (first / 'shared.txt').write_text('first\n')
    (second / 'shared.txt').write_text('second\n')
    (second / 'only_second.txt').write_text('second\n')
    for i in range(3):
        (second / f"flux_{i}.h5").write_text('')
    (first / 'flux_0.h5').write_text('')
    return first, second


class TestFindFile:
    def test_first_directory_wins(self, two_dirs):
        first, second = two_dirs
        search_path = SearchPath([first, second])
        
        assert search_path.find_file('shared.txt').read_text() == 'first\n'
        assert search_path.find_file('only_second.txt') == (second / 'only_second.txt').resolve()
        assert search_path.find_file('absent.txt') is None
    
    def test_absolute_names(self, two_dirs):
        first, _ = two_dirs
        search_path = SearchPath()
        
        assert search_path.find_file(str(first / 'shared.txt')) == first / 'shared.txt'
        assert search_path.find_file(str(first / 'nothing.txt')) is None
    
    def test_from_environment(self, two_dirs, monkeypatch):
        first, second = two_dirs
        monkeypatch.setenv(SEARCH_PATH_ENV, f"{second}:{first}")
        
        search_path = SearchPath.from_env()
        assert search_path.directories == [str(second), str(first)]
        assert search_path.find_file('shared.txt').read_text() == 'second\n'


class TestCountPatternMatches:
    def test_counts_per_directory(self, two_dirs):
        first, second = two_dirs
        counts = SearchPath([first, second]).count_pattern_matches('flux_*.h5')
        
        assert counts == {str(first / 'flux_*.h5'): 1, str(second / 'flux_*.h5'): 3}
    
    def test_missing_directory_is_skipped(self, two_dirs, tmp_path):
        first, _ = two_dirs
        counts = SearchPath([tmp_path / 'nowhere', first]).count_pattern_matches('flux_?.h5')
        
        assert counts == {str(first / 'flux_?.h5'): 1}


class TestValidatePaths:
    def test_output_parents_created(self, tmp_path):
        path = validate_output_path(tmp_path / 'a' / 'b' / 'table.yaml')
        
        assert path.parent.is_dir()
    
    def test_must_exist(self, tmp_path):
        with pytest.raises(PathValidationError):
            validate_path(tmp_path / 'missing', must_exist=True)
