"""
Rendering Tests
===============
Plain-text formatter output and target substitution in the renderer.
"""

import pytest

from citekit.errors import ErrorCode, ErrorList
from citekit.records.repository import ResolvedRecord
from citekit.records.schema import DateValue, Name, PartialDate, RecordBuilder, RecordType
from citekit.render.formatter import (
    CITE_TARGET_MARK,
    ENTRY_TARGET_MARK,
    FormatterError,
    PlainTextFormatter,
    resolve_locale,
)
from citekit.render.renderer import PAGE_SEPARATOR, CitationRenderer, render_entry
from citekit.render.scope import Scope


@pytest.fixture
def article():
    return (
        RecordBuilder(RecordType.ARTICLE_JOURNAL, "smith2020")
        .set("title", "A Study")
        .set("container_title", "Journal of Things")
        .set("volume", "12")
        .set("issue", "3")
        .set("page", "100-120")
        .set("author", [Name(family="Smith", given="John")])
        .set("issued", DateValue(PartialDate(2020)))
        .set("doi", "10.1/x")
        .build()
    )


@pytest.fixture
def book():
    return (
        RecordBuilder(RecordType.BOOK, "doe2019")
        .set("title", "The Book")
        .set("author", [Name(family="Doe", given="Jane"), Name(family="Roe", given="Rick")])
        .set("publisher", "Acme Press")
        .set("publisher_place", "Paris")
        .set("issued", DateValue(PartialDate(2019)))
        .build()
    )


class TestPlainTextFormatter:
    @pytest.mark.unit
    def test_numeric_citation(self, article, book):
        formatter = PlainTextFormatter([book, article], "ieee")
        assert formatter.register_citation("smith2020") == f"[[1]]({CITE_TARGET_MARK}#smith2020)"
        assert formatter.register_citation("doe2019", "10") == f"[[2, p. 10]]({CITE_TARGET_MARK}#doe2019)"
        assert formatter.register_citation("smith2020", "4-6") == f"[[1, pp. 4-6]]({CITE_TARGET_MARK}#smith2020)"

    @pytest.mark.unit
    def test_author_date_citation(self, article, book):
        formatter = PlainTextFormatter([article, book], "author-date")
        assert formatter.register_citation("smith2020") == f"[(Smith, 2020)]({CITE_TARGET_MARK}#smith2020)"
        assert formatter.register_citation("doe2019", "chap. 2") == (
            f"[(Doe and Roe, 2019, chap. 2)]({CITE_TARGET_MARK}#doe2019)"
        )

    @pytest.mark.unit
    def test_locale_terms(self, book):
        formatter = PlainTextFormatter([book], "apa", locale="fr-FR")
        assert "(Doe et Roe, 2019)" in formatter.register_citation("doe2019")

    @pytest.mark.unit
    def test_ieee_entries(self, article, book):
        formatter = PlainTextFormatter([article, book], "ieee")
        formatter.register_citation("smith2020")
        formatter.register_citation("doe2019")
        assert formatter.render_bibliography().entries == [
            '[1] J. Smith, "A Study," *Journal of Things*, vol. 12, no. 3, pp. 100-120, 2020. '
            f"doi: 10.1/x. [smith2020]({ENTRY_TARGET_MARK})",
            f"[2] J. Doe and R. Roe, *The Book*, Paris: Acme Press, 2019. [doe2019]({ENTRY_TARGET_MARK})",
        ]

    @pytest.mark.unit
    def test_author_date_entries_sorted(self, article, book):
        formatter = PlainTextFormatter([article, book], "author-date")
        formatter.register_citation("smith2020")
        formatter.register_citation("doe2019")
        bibliography = formatter.render_bibliography()
        assert bibliography.keys == ["doe2019", "smith2020"]
        assert bibliography.entries[1] == (
            "Smith, J. (2020). A Study. *Journal of Things*, 12(3), 100-120. "
            f"https://doi.org/10.1/x [smith2020]({ENTRY_TARGET_MARK})"
        )

    @pytest.mark.unit
    def test_only_registered_keys_listed(self, article, book):
        formatter = PlainTextFormatter([article, book], "ieee")
        formatter.register_citation("doe2019")
        assert formatter.render_bibliography().keys == ["doe2019"]

    @pytest.mark.unit
    def test_unknown_style(self, article):
        with pytest.raises(FormatterError):
            PlainTextFormatter([article], "klingon")

    @pytest.mark.unit
    def test_unknown_key(self, article):
        with pytest.raises(FormatterError):
            PlainTextFormatter([article], "ieee").register_citation("nope")

    @pytest.mark.unit
    def test_resolve_locale_fallbacks(self):
        assert resolve_locale("fr_CA")["and"] == "et"
        assert resolve_locale("xx-YY")["and"] == "and"
        assert resolve_locale(None)["and"] == "and"


class TestCitationRenderer:
    @pytest.fixture
    def renderer(self, article, book):
        records = [ResolvedRecord(book, target="node-b"), ResolvedRecord(article, target="node-a")]
        return CitationRenderer(records, "ieee", "en-US", bibliography_node="bib")

    @pytest.mark.unit
    def test_numbers_follow_aggregated_order(self, renderer):
        assert renderer.cite("smith2020") == ["[[2]](bib#smith2020)"]
        assert renderer.cite("doe2019,smith2020[p. 3]") == ["[[1]](bib#doe2019)", "[[2, p. 3]](bib#smith2020)"]

    @pytest.mark.unit
    def test_page_scope_links_to_same_page(self, renderer):
        assert renderer.cite("doe2019", Scope.PAGE) == ["[[1]](#doe2019)"]

    @pytest.mark.unit
    def test_hidden_citation_has_no_text(self, renderer):
        assert renderer.cite("doe2019", hidden=True) == []

    @pytest.mark.unit
    def test_unknown_key_recorded(self, renderer):
        assert renderer.cite("nope,doe2019") == ["[[1]](bib#doe2019)"]
        assert renderer.errors.by_code(ErrorCode.FORMATTER)[0].params == ("nope",)

    @pytest.mark.unit
    def test_cited_bibliography_links_to_owner(self, renderer):
        text = renderer.render_bibliography(Scope.CITED)
        lines = text.split("\n")
        assert len(lines) == 2
        assert lines[0].endswith("[doe2019](node-b)")
        assert lines[1].endswith("[smith2020](node-a)")
        assert ENTRY_TARGET_MARK not in text

    @pytest.mark.unit
    def test_page_bibliography(self, renderer):
        text = renderer.render_bibliography(Scope.PAGE, page_keys=["smith2020"])
        lines = text.split("\n")
        assert lines[0] == PAGE_SEPARATOR
        assert len(lines) == 2
        assert lines[1].startswith("[2] J. Smith")

    @pytest.mark.unit
    def test_hidden_bibliography(self, renderer):
        assert renderer.render_bibliography(Scope.HIDDEN) == ""

    @pytest.mark.unit
    def test_unknown_style_degrades(self, article):
        errors = ErrorList()
        renderer = CitationRenderer([ResolvedRecord(article)], "klingon", "en-US", errors=errors)
        assert not renderer.available
        assert renderer.cite("smith2020") == []
        assert renderer.render_bibliography(Scope.CITED) == ""
        assert errors.codes() == [ErrorCode.FORMATTER]

    @pytest.mark.unit
    def test_render_entry(self, book):
        text = render_entry(book, "node-b", "ieee", "en-US")
        assert text == "[1] J. Doe and R. Roe, *The Book*, Paris: Acme Press, 2019. [doe2019](node-b)"

    @pytest.mark.unit
    def test_custom_formatter_factory(self, article):
        class Upper:
            def __init__(self, records):
                self.records = records

            def register_citation(self, key, locator=""):
                return key.upper()

            def render_bibliography(self):
                from citekit.render.formatter import Bibliography

                return Bibliography()

        renderer = CitationRenderer(
            [ResolvedRecord(article)],
            "any",
            "en-US",
            formatter_factory=lambda records, style, locale: Upper(records),
        )
        assert renderer.cite("smith2020") == ["SMITH2020"]


@pytest.mark.unit
@pytest.mark.parametrize("value,expected", [
    ("cited", Scope.CITED),
    (" PAGE ", Scope.PAGE),
    ("hidden", Scope.HIDDEN),
    ("", Scope.UNDEFINED),
    (None, Scope.UNDEFINED),
    ("bogus", Scope.UNDEFINED),
])
def test_scope_parse(value, expected):
    assert Scope.parse(value) is expected
