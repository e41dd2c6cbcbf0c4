"""Tests for zen.pages.nearest: nearest-ancestor error templates."""

from zen.pages.nearest import (
    DEFAULT_ERROR_TEMPLATES,
    find_nearest,
    nearest_error_template,
    url_start_dir,
)


class TestFindNearest:
    def test_same_directory(self, site) -> None:
        root = site({"pages/docs/_404.html": "docs 404"})
        assert find_nearest(root / "pages/docs", "_404.html", root / "pages") == "docs 404"

    def test_walks_up(self, site) -> None:
        root = site({"pages/_404.html": "root 404", "pages/docs/a/b/page.html": "x"})
        assert find_nearest(root / "pages/docs/a/b", "_404.html", root / "pages") == "root 404"

    def test_closest_wins(self, site) -> None:
        root = site({"pages/_404.html": "root", "pages/docs/_404.html": "docs", "pages/docs/a/x.html": ""})
        assert find_nearest(root / "pages/docs/a", "_404.html", root / "pages") == "docs"

    def test_stops_at_root(self, site) -> None:
        # A file above the routing root is never used
        root = site({"_404.html": "outside", "pages/docs/page.html": ""})
        assert find_nearest(root / "pages/docs", "_404.html", root / "pages") is None

    def test_start_outside_root_clamps(self, site, tmp_path) -> None:
        root = site({"pages/_404.html": "root"})
        assert find_nearest(tmp_path, "_404.html", root / "pages") == "root"


class TestNearestErrorTemplate:
    def test_default_when_missing(self, site) -> None:
        root = site({"pages/index.html": ""})
        pages = root / "pages"
        assert nearest_error_template(404, pages, pages) == DEFAULT_ERROR_TEMPLATES[404]
        assert nearest_error_template(500, pages, pages) == DEFAULT_ERROR_TEMPLATES[500]

    def test_status_specific(self, site) -> None:
        root = site({"pages/_404.html": "missing", "pages/_500.html": "broken"})
        pages = root / "pages"
        assert nearest_error_template(404, pages, pages) == "missing"
        assert nearest_error_template(500, pages, pages) == "broken"


class TestUrlStartDir:
    def test_root(self, tmp_path) -> None:
        assert url_start_dir("/", tmp_path) == tmp_path

    def test_parent_of_last_segment(self, tmp_path) -> None:
        assert url_start_dir("/docs/missing", tmp_path) == tmp_path / "docs"
        assert url_start_dir("/missing", tmp_path) == tmp_path
