"""
Unit Tests for path helpers
"""
import pytest

from patchstream.utils.paths import basename, extname, glob_to_regex, normalize_path


class TestPaths:
    """Test normalization helpers"""

    @pytest.mark.parametrize("raw,expected", [
        ("./src/app.js", "src/app.js"),
        ("/index.html", "index.html"),
        ("src\\styles\\main.css", "src/styles/main.css"),
        ("  a.js  ", "a.js"),
        (None, ""),
    ])
    def test_normalize_path(self, raw, expected):
        assert normalize_path(raw) == expected

    def test_basename_is_lowercase(self):
        assert basename("Src/Style.CSS") == "style.css"
        assert basename("") == ""

    @pytest.mark.parametrize("path,ext", [
        ("index.HTML", "html"),
        ("src/app.test.tsx", "tsx"),
        (".env", ""),
        ("Makefile", ""),
    ])
    def test_extname(self, path, ext):
        assert extname(path) == ext

    def test_glob_to_regex(self):
        single = glob_to_regex("src/*.css")
        assert single.match("src/a.css")
        assert not single.match("src/deep/a.css")
        assert glob_to_regex("src/**").match("SRC/deep/a.css")
        assert not glob_to_regex("a.js").match("xa.js")
