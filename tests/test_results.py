import pytest

from docsearch.access_control import HeaderGroupsAccessController
from docsearch.config import IndexConfig
from docsearch.errors import FieldDecodeError, SearchIOError
from docsearch.request import RequestSearchContext, SimplePageRequest
from docsearch.search.db import FIELD_SUMMARY
from docsearch.search.models import StoredDocument
from docsearch.search.results import MAX_PAGE_VALUE, get_compressed_field_value, get_search_results


def _search(holder, params, headers=None):
    request = SimplePageRequest(params, headers=headers)
    return get_search_results(RequestSearchContext(), request, holder=holder)


@pytest.fixture
def family(make_index, holder_for):
    docs = make_index(
        "docs",
        [
            {"url": "file:///docs/plan.txt", "title": "Plan", "content": "budget plan for next year"},
            {"url": "file:///docs/notes.txt", "title": "Notes", "content": "meeting notes"},
        ],
    )
    wiki = make_index(
        "wiki",
        [{"url": "http://wiki/Budget", "title": "Budget", "content": "budget overview", "summary": "All budgets."}],
    )
    return holder_for(
        [
            IndexConfig(name="all", directory=docs.parent, is_parent=True),
            IndexConfig(name="docs", directory=docs, parent_name="all"),
            IndexConfig(name="wiki", directory=wiki, parent_name="all"),
        ]
    )


def test_parent_index_searches_its_children(family):
    results = _search(family, [("index", "all"), ("query", "budget")])
    assert results.total_hits == 2
    assert {(hit.index_name, hit.url) for hit in results.hits} == {
        ("docs", "file:///docs/plan.txt"),
        ("wiki", "http://wiki/Budget"),
    }


def test_summary_is_stored_compressed(family):
    results = _search(family, [("index", "wiki"), ("query", "budget")])
    (hit,) = results.hits
    assert get_compressed_field_value(hit.document, FIELD_SUMMARY) == "All budgets."


def test_missing_compressed_field_is_empty(family):
    results = _search(family, [("index", "docs"), ("query", "meeting")])
    assert get_compressed_field_value(results.hits[0].document, FIELD_SUMMARY) == ""


def test_corrupt_compressed_field():
    document = StoredDocument(1, "file:///x", "", None, None, {FIELD_SUMMARY: b"not zlib"})
    with pytest.raises(FieldDecodeError, match="Couldn't uncompress field value."):
        get_compressed_field_value(document, FIELD_SUMMARY)


def test_results_are_computed_once_per_request(family):
    ctx = RequestSearchContext()
    first = get_search_results(ctx, SimplePageRequest([("index", "docs"), ("query", "budget")]), holder=family)
    again = get_search_results(ctx, SimplePageRequest([("index", "wiki"), ("query", "notes")]), holder=family)
    assert again is first


def test_empty_query_returns_no_hits(family):
    results = _search(family, [("index", "docs")])
    assert results.query == ""
    assert results.total_hits == 0
    assert results.hits == []


def test_paging(make_index, holder_for):
    directory = make_index(
        "paged",
        [{"url": f"file:///p/{letter}.txt", "content": "same words"} for letter in "abcde"],
    )
    holder = holder_for([IndexConfig(name="paged", directory=directory)])
    results = _search(
        holder,
        [("index", "paged"), ("query", "words"), ("fromresult", "2"), ("maxresults", "2")],
    )
    assert results.total_hits == 5
    assert [hit.url for hit in results.hits] == ["file:///p/c.txt", "file:///p/d.txt"]
    assert results.hit_count == 2


def test_access_controller_restricts_hits(make_index, holder_for):
    directory = make_index(
        "secured",
        [
            {"url": "file:///s/a.txt", "content": "contract", "groups": ["legal"]},
            {"url": "file:///s/b.txt", "content": "contract", "groups": ["board"]},
        ],
    )
    controller = HeaderGroupsAccessController()
    holder = holder_for([IndexConfig(name="secured", directory=directory, access_controller=controller)])

    params = [("index", "secured"), ("query", "contract")]
    restricted = _search(holder, params, headers={"X-Docsearch-Groups": "legal"})
    assert [hit.url for hit in restricted.hits] == ["file:///s/a.txt"]
    assert restricted.total_hits == 1

    unrestricted = _search(holder, params)
    assert unrestricted.total_hits == 2


def test_rewrite_rules_apply_to_hit_urls(make_index, holder_for):
    directory = make_index("share", [{"url": "file:///srv/share/a.pdf", "content": "invoice"}])
    index = IndexConfig(
        name="share",
        directory=directory,
        rewrite_rules=(("file:///srv/share/", "http://files.example.com/"),),
        open_in_new_window=True,
    )
    results = _search(holder_for([index]), [("index", "share"), ("query", "invoice")])
    (hit,) = results.hits
    assert hit.url == "http://files.example.com/a.pdf"
    assert hit.open_in_new_window


def test_field_filters(make_index, holder_for):
    directory = make_index(
        "reports",
        [
            {"url": "file:///r/2005.pdf", "title": "Annual Report", "content": "budget", "fields": {"year": "2005"}},
            {"url": "file:///r/2023.pdf", "title": "Annual Report", "content": "budget", "fields": {"year": "2023"}},
            {"url": "file:///r/memo.pdf", "title": "Memo", "content": "budget", "fields": {"year": "2023"}},
        ],
    )
    holder = holder_for([IndexConfig(name="reports", directory=directory)])

    exact = _search(
        holder,
        [
            ("index", "reports"),
            ("query", "budget"),
            ("field.title", "Annual Report"),
            ("fieldNoString.year", "2023"),
        ],
    )
    assert [hit.url for hit in exact.hits] == ["file:///r/2023.pdf"]

    ranged = _search(holder, [("index", "reports"), ("fieldNoString.year", "[2000 TO 2010]")])
    assert [hit.url for hit in ranged.hits] == ["file:///r/2005.pdf"]


def test_missing_index_directory(tmp_path, holder_for):
    holder = holder_for([IndexConfig(name="ghost", directory=tmp_path / "nowhere")])
    with pytest.raises(SearchIOError, match="Index not found"):
        _search(holder, [("index", "ghost"), ("query", "x")])


@pytest.mark.parametrize(
    ("value", "expected_max", "expected_from"),
    [
        ("²", 25, 0),
        ("-1", 25, 0),
        ("ten", 25, 0),
        (" 3 ", 3, 3),
        ("99999999999999999999999", MAX_PAGE_VALUE, MAX_PAGE_VALUE),
    ],
)
def test_paging_values_are_sanitised(make_index, holder_for, value, expected_max, expected_from):
    directory = make_index(
        "paged",
        [{"url": f"file:///p/{letter}.txt", "content": "same words"} for letter in "abcde"],
    )
    holder = holder_for([IndexConfig(name="paged", directory=directory)])

    sized = _search(holder, [("index", "paged"), ("query", "words"), ("maxresults", value)])
    assert sized.max_results == expected_max
    assert sized.hit_count == min(5, expected_max)

    offset = _search(holder, [("index", "paged"), ("query", "words"), ("fromresult", value)])
    assert offset.from_result == expected_from
    assert offset.hit_count == max(0, 5 - expected_from)
