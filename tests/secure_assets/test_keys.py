"""Tests for reference normalisation."""

import pytest

from secure_assets.keys import normalize_reference, reference_origin, rewrite_base_url


class TestNormalizeReference:
    """Tests for normalize_reference."""

    @pytest.mark.parametrize(
        "spelling",
        [
            "https://assets.artflaneur.com.au/images/a.jpg",
            "HTTPS://Assets.ArtFlaneur.com.au/images/a.jpg",
            "https://assets.artflaneur.com.au:443/images/a.jpg",
            "  https://assets.artflaneur.com.au/images/a.jpg  ",
            "https://assets.artflaneur.com.au/images/a.jpg#top",
        ],
    )
    def test_equivalent_spellings_share_a_key(self, spelling):
        assert normalize_reference(spelling) == "https://assets.artflaneur.com.au/images/a.jpg"

    def test_path_case_preserved(self):
        assert normalize_reference("https://Assets.example.com/Images/A.JPG").endswith(
            "/Images/A.JPG"
        )

    def test_query_preserved(self):
        key = normalize_reference("https://assets.example.com/a.jpg?w=100&h=50")
        assert key == "https://assets.example.com/a.jpg?w=100&h=50"

    def test_distinct_resources_differ(self):
        assert normalize_reference("https://assets.example.com/a.jpg") != normalize_reference(
            "https://assets.example.com/b.jpg"
        )

    def test_non_default_port_kept(self):
        assert normalize_reference("http://assets.example.com:8080/a") == (
            "http://assets.example.com:8080/a"
        )

    def test_empty_path(self):
        assert normalize_reference("https://assets.example.com") == "https://assets.example.com/"

    def test_relative_reference_unchanged(self):
        assert normalize_reference("/images/a.jpg") == "/images/a.jpg"

    def test_invalid_port_unchanged(self):
        assert normalize_reference("https://assets.example.com:abc/a") == (
            "https://assets.example.com:abc/a"
        )


class TestReferenceOrigin:
    """Tests for reference_origin."""

    def test_scheme_and_host_lowercased_port_dropped(self):
        origin = reference_origin(" HTTPS://Assets.ArtFlaneur.com.au:8443/a.jpg?x=1 ")
        assert origin == "https://assets.artflaneur.com.au"

    def test_lookalike_host_keeps_full_hostname(self):
        origin = reference_origin("https://assets.artflaneur.com.au.evil.example/x.jpg")
        assert origin == "https://assets.artflaneur.com.au.evil.example"

    @pytest.mark.parametrize(
        "reference",
        [
            "https://assets.artflaneur.com.au@evil.example/x.jpg",
            "https://user:pw@assets.artflaneur.com.au/x.jpg",
            "/images/a.jpg",
            "https://assets.artflaneur.com.au:notaport/x.jpg",
        ],
    )
    def test_no_origin(self, reference):
        assert reference_origin(reference) is None


class TestRewriteBaseUrl:
    """Tests for rewrite_base_url."""

    def test_no_base_url(self):
        url = "https://assets.artflaneur.com.au/a.jpg?w=1"
        assert rewrite_base_url(url, None) == url

    def test_swaps_scheme_and_host(self):
        rewritten = rewrite_base_url(
            "https://assets.artflaneur.com.au/images/a.jpg?w=1", "http://localhost:3000"
        )
        assert rewritten == "http://localhost:3000/images/a.jpg?w=1"

    def test_base_path_prefix(self):
        rewritten = rewrite_base_url(
            "https://assets.artflaneur.com.au/a.jpg", "http://localhost:3000/proxy/"
        )
        assert rewritten == "http://localhost:3000/proxy/a.jpg"
