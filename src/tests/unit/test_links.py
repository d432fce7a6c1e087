"""Tests for reference parsing and link formatting."""

import pytest

from attachsync.core.types import LinkStyle, Reference, ReferenceKind
from attachsync.vault.links import (
    encode_markdown_target,
    format_target,
    parse_references,
    split_fragment,
)


class TestParseReferences:
    """Tests for parse_references."""

    def test_wiki_embed_and_link(self):
        cache = parse_references("See ![[pic.png|300]] and [[Other note#Intro|other]].")

        assert [r.link for r in cache.embeds] == ["pic.png"]
        assert cache.embeds[0].display == "300"
        assert cache.embeds[0].style is LinkStyle.WIKI
        assert [r.link for r in cache.links] == ["Other note#Intro"]
        assert cache.links[0].kind is ReferenceKind.LINK

    def test_markdown_targets_are_decoded(self):
        text = "![shot](my%20shot.png) [doc](<Docs/my doc.pdf>) [t](b.pdf \"Title\")"

        cache = parse_references(text)

        assert [r.link for r in cache.embeds] == ["my shot.png"]
        assert [r.link for r in cache.links] == ["Docs/my doc.pdf", "b.pdf"]
        assert all(r.style is LinkStyle.MARKDOWN for r in cache.references())

    def test_document_order_within_each_list(self):
        text = "[[b.pdf]] ![](a.png) ![[c.png]] [d](d.pdf)"

        cache = parse_references(text)

        assert [r.link for r in cache.embeds] == ["a.png", "c.png"]
        assert [r.link for r in cache.links] == ["b.pdf", "d.pdf"]
        assert [r.link for r in cache.references()] == ["a.png", "c.png", "b.pdf", "d.pdf"]

    def test_balanced_parentheses_in_bare_target(self):
        cache = parse_references("![x](Note%20(1).png) [d](scan(2).pdf)")

        assert [r.link for r in cache.embeds] == ["Note (1).png"]
        assert [r.link for r in cache.links] == ["scan(2).pdf"]

    def test_external_urls_ignored(self):
        cache = parse_references("[site](https://example.com) ![](mailto:x@y.z)")

        assert cache.references() == []

    def test_code_is_ignored(self):
        text = "```\n![[in-fence.png]]\n```\nUse `[[inline.png]]` but ![[real.png]]\n"

        cache = parse_references(text)

        assert [r.link for r in cache.references()] == ["real.png"]

    def test_spans_point_at_target(self):
        text = "x ![[pic.png|alt]] y"

        ref = parse_references(text).embeds[0]

        assert text[ref.start : ref.end] == "![[pic.png|alt]]"
        assert text[ref.target_start : ref.target_end] == "pic.png"

    def test_angle_bracket_span_includes_brackets(self):
        text = "![a](<my pic.png>)"

        ref = parse_references(text).embeds[0]

        assert text[ref.target_start : ref.target_end] == "<my pic.png>"


class TestFormatting:
    """Tests for link target formatting."""

    @pytest.mark.parametrize(
        "link,expected",
        [
            ("pic.png", ("pic.png", "")),
            ("Note#Heading", ("Note", "#Heading")),
            ("Note^abc", ("Note", "^abc")),
        ],
    )
    def test_split_fragment(self, link, expected):
        assert split_fragment(link) == expected

    def test_encode_markdown_target(self):
        assert encode_markdown_target("a b (1).png") == "a%20b%20%281%29.png"

    def test_wiki_target_is_raw(self):
        ref = Reference(link="pic.png", original="[[pic.png]]", style=LinkStyle.WIKI)

        assert format_target(ref, "pic.png", "assets/N pic.png") == "assets/N pic.png"

    def test_markdown_angle_brackets_kept(self):
        ref = Reference(link="my pic.png", original="", style=LinkStyle.MARKDOWN)

        assert format_target(ref, "<my pic.png>", "assets/N pic.png") == "<assets/N pic.png>"

    def test_markdown_bare_target_encoded(self):
        ref = Reference(link="pic.png", original="", style=LinkStyle.MARKDOWN)

        assert format_target(ref, "pic.png", "assets/N pic.png") == "assets/N%20pic.png"
