"""Tests for domain resolution, extension filtering and the scope filter."""

from __future__ import annotations

import pytest

from domaincrawler.core import Frontier
from domaincrawler.scope import DomainResolver, ScopeFilter, extension_ignored
from domaincrawler.visited import VisitedTracker


@pytest.fixture(scope="module")
def resolver():
    return DomainResolver()


class TestExtensionIgnored:
    @pytest.mark.parametrize("url", [
        "http://seed.com/report.pdf",
        "http://seed.com/REPORT.PDF",
        "http://seed.com/archive.tar.gz",
        "http://seed.com/slides.PPTX",
        "http://seed.com/files/linux.torrent",
        "http://seed.com/photo.jpg?size=large",
    ])
    def test_non_html_resources(self, url):
        assert extension_ignored(url)

    @pytest.mark.parametrize("url", [
        "",
        "http://seed.com/",
        "http://seed.com/about",
        "http://seed.com/index.html",
        "http://seed.com/pdf",
        "http://seed.com/download?file=a.pdf",
    ])
    def test_pages(self, url):
        assert not extension_ignored(url)


class TestDomainResolver:
    def test_registrable_domain(self, resolver):
        assert resolver.registrable_domain("http://seed.com/p") == "seed.com"
        assert resolver.registrable_domain("https://www.Seed.com/") == "seed.com"
        assert resolver.registrable_domain("https://news.bbc.co.uk/sport") == "bbc.co.uk"

    def test_hosts_without_public_suffix(self, resolver):
        assert resolver.registrable_domain("http://localhost:8000/") == "localhost"
        assert resolver.registrable_domain("http://127.0.0.1/x") == "127.0.0.1"

    def test_unresolvable(self, resolver):
        assert resolver.registrable_domain("") is None


class TestScopeFilter:
    def _scope(self, resolver):
        visited = VisitedTracker(size=8192, hashes=3)
        frontier = Frontier()
        return ScopeFilter("seed.com", visited, frontier, resolver), visited, frontier

    def test_in_domain_page_is_in_scope(self, resolver):
        scope, _, _ = self._scope(resolver)
        assert scope.in_scope("http://seed.com/a")
        assert scope.in_scope("https://blog.seed.com/post")

    def test_off_domain_is_excluded(self, resolver):
        scope, _, _ = self._scope(resolver)
        assert not scope.in_scope("http://other.com/x")
        assert not scope.in_scope("http://seed.com.evil.net/x")

    def test_visited_is_excluded(self, resolver):
        scope, visited, _ = self._scope(resolver)
        visited.insert("http://seed.com/a")
        assert not scope.in_scope("http://seed.com/a")

    def test_queued_is_excluded(self, resolver):
        scope, _, frontier = self._scope(resolver)
        frontier.append("http://seed.com/a")
        assert not scope.in_scope("http://seed.com/a")

    def test_ignored_extension_is_excluded(self, resolver):
        scope, _, _ = self._scope(resolver)
        assert not scope.in_scope("http://seed.com/manual.PDF")

    def test_same_domain(self, resolver):
        scope, _, _ = self._scope(resolver)
        assert scope.same_domain("https://www.seed.com/landing")
        assert not scope.same_domain("https://elsewhere.org/landing")
