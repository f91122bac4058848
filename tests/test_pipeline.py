import pytest
from listdata.exceptions import InvalidCursorError, InvalidFieldError, InvalidPaginationError, TypeMismatchError
from listdata.pipeline import ListQueryEngine, process
from listdata.specs import (
    CursorPagination,
    FilterOperator as Op,
    FilterSpec,
    OffsetPagination,
    Predicate,
    SearchSpec,
    SortDirection,
    SortKey,
    SortSpec,
)
from listdata.whitelist import FieldWhitelist
from models.product import PRODUCT_FIELDS, PRODUCT_SEARCH_FIELDS, Product

NAMES = [
    "Lamp", "Anchor", "Kettle", "Bucket", "Jar", "Candle",
    "Drill", "Ink", "Easel", "Hammer", "Fork", "Glove",
]


def make_products():
    return [
        Product(
            id=i + 1,
            name=name,
            description=f"{name.lower()} for the workshop",
            price=(i % 4) * 5 or None,
            active=i % 3 != 0,
            tags=["tools"] if i % 2 else ["home"],
            date_created=1_700_000_000_000 + i * 86_400_000,
        )
        for i, name in enumerate(NAMES)
    ]


@pytest.fixture
def products():
    return make_products()


@pytest.fixture
def engine():
    return ListQueryEngine(FieldWhitelist(PRODUCT_FIELDS, searchable=PRODUCT_SEARCH_FIELDS))


def by(*keys):
    return SortSpec(keys=[SortKey(field=f, direction=d) for f, d in keys])


def names(page):
    return [p.name for p in page.items]


# ------------------------------------------------------
# SCENARIOS
# ------------------------------------------------------

def test_sorted_first_page(engine, products):
    page = engine.process(
        products,
        pagination=OffsetPagination(page=1, page_size=5),
        sort=by(("name", SortDirection.ASC)),
    )

    assert names(page) == ["Anchor", "Bucket", "Candle", "Drill", "Easel"]
    assert page.pagination.total_pages == 3
    assert page.pagination.has_next is True
    assert page.pagination.has_previous is False
    assert page.search_results is None


def test_boolean_filter_counts(engine):
    records = [{"name": f"r{i}", "active": i >= 4} for i in range(10)]
    page = process(
        records,
        FieldWhitelist(["name", "active"]),
        filters=FilterSpec(predicates=[Predicate(field="active", operator=Op.BOOLEAN_EQUALS, value=True)]),
    )

    assert len(page.items) == 6
    assert page.total == 6


def test_search_prefix_highlight(engine, products):
    page = engine.process(products, search=SearchSpec(query="wid", fields=["name"]))
    assert page.items == []

    products.append(Product(id=99, name="Widget", description="", price=1, active=True, tags=None, date_created=None))
    page = engine.process(products, search=SearchSpec(query="wid", fields=["name"]))

    assert names(page) == ["Widget"]
    result = page.search_results[0]
    assert result.score > 0
    assert (result.highlights[0].start, result.highlights[0].end) == (0, 3)


def test_multi_key_sort_tie_break(engine):
    records = [
        Product(id=1, name="B", description="", price=10, active=True, tags=None, date_created=None),
        Product(id=2, name="C", description="", price=3, active=True, tags=None, date_created=None),
        Product(id=3, name="A", description="", price=10, active=True, tags=None, date_created=None),
    ]
    page = engine.process(records, sort=by(("price", SortDirection.DESC), ("name", SortDirection.ASC)))

    assert names(page) == ["A", "B", "C"]


def test_page_size_zero(engine, products):
    page = engine.process(products, pagination=OffsetPagination(page=1, page_size=0))

    assert page.items == []
    assert page.pagination.total_items == 12
    assert page.pagination.total_pages == 0
    assert page.pagination.has_next is False
    assert page.pagination.has_previous is False


def test_unknown_filter_field_fails_before_evaluation(engine):
    class Untouchable:
        def __getattr__(self, name):
            raise AssertionError("record evaluated")

    spec = FilterSpec(predicates=[Predicate(field="nonexistent_field", operator=Op.EQUALS, value=1)])

    with pytest.raises(InvalidFieldError) as exc:
        engine.process([Untouchable()], filters=spec)

    assert exc.value.field == "nonexistent_field"
    assert exc.value.stage == "filter"


# ------------------------------------------------------
# PROPERTIES
# ------------------------------------------------------

@pytest.mark.parametrize("size", [1, 4, 5, 12, 20])
def test_pages_partition_result(engine, products, size):
    filters = FilterSpec(predicates=[Predicate(field="active", operator=Op.BOOLEAN_EQUALS, value=True)])
    sort = by(("name", SortDirection.DESC))
    everything = engine.process(products, OffsetPagination(page=1, page_size=100), filters, sort)

    seen = []
    page_number = 1
    while True:
        page = engine.process(products, OffsetPagination(page=page_number, page_size=size), filters, sort)
        seen.extend(page.items)
        if not page.pagination.has_next:
            break
        page_number += 1

    assert seen == everything.items
    assert len(seen) == everything.total


def test_filter_monotonicity(engine, products):
    active = Predicate(field="active", operator=Op.BOOLEAN_EQUALS, value=True)
    tools = Predicate(field="tags", operator=Op.CONTAINS, value="tools")

    one = engine.process(products, OffsetPagination(page_size=100), FilterSpec(predicates=[active]))
    two = engine.process(products, OffsetPagination(page_size=100), FilterSpec(predicates=[active, tools]))

    assert two.total <= one.total


def test_sort_stability_across_calls(engine, products):
    sort = by(("tags", SortDirection.ASC))
    first = engine.process(products, OffsetPagination(page_size=100), sort=sort)
    second = engine.process(products, OffsetPagination(page_size=100), sort=sort)

    assert first.items == second.items
    homes = [p.id for p in first.items if p.tags == ["home"]]
    assert homes == sorted(homes)


@pytest.mark.parametrize("direction", [SortDirection.ASC, SortDirection.DESC])
def test_nulls_after_values(engine, products, direction):
    page = engine.process(products, OffsetPagination(page_size=100), sort=by(("price", direction)))
    prices = [p.price for p in page.items]

    first_null = prices.index(None)
    assert all(p is None for p in prices[first_null:])
    assert all(p is not None for p in prices[:first_null])


def test_search_exclusivity(engine, products):
    page = engine.process(products, OffsetPagination(page_size=100), search=SearchSpec(query="an"))

    assert page.items
    assert all(r.score > 0 for r in page.search_results)
    assert len(page.search_results) == len(page.items)


def test_cursor_round_trip_matches_offset(engine, products):
    sort = by(("name", SortDirection.ASC))
    first = engine.process(products, CursorPagination(page_size=5), sort=sort)
    second = engine.process(products, CursorPagination(cursor=first.pagination.next_cursor, page_size=5), sort=sort)
    offset_second = engine.process(products, OffsetPagination(page=2, page_size=5), sort=sort)

    assert second.items == offset_second.items


# ------------------------------------------------------
# ORCHESTRATION
# ------------------------------------------------------

def test_search_orders_by_relevance_by_default(engine):
    records = [
        Product(id=1, name="Blue lamp", description="", price=1, active=True, tags=None, date_created=None),
        Product(id=2, name="Lamp", description="a lamp", price=1, active=True, tags=None, date_created=None),
        Product(id=3, name="Red chair", description="", price=1, active=True, tags=None, date_created=None),
    ]
    page = engine.process(records, search=SearchSpec(query="lamp"))

    assert [p.id for p in page.items] == [2, 1]
    assert page.search_results[0].score > page.search_results[1].score
    assert page.search_metrics.total_results == 2


def test_explicit_sort_overrides_relevance(engine):
    records = [
        Product(id=1, name="Blue lamp", description="", price=1, active=True, tags=None, date_created=None),
        Product(id=2, name="Lamp", description="a lamp", price=1, active=True, tags=None, date_created=None),
    ]
    page = engine.process(records, search=SearchSpec(query="lamp"), sort=by(("id", SortDirection.ASC)))

    assert [p.id for p in page.items] == [1, 2]
    # search results stay aligned with their records
    assert page.search_results[1].score > page.search_results[0].score


def test_score_sort_ascending(engine):
    records = [
        Product(id=1, name="Blue lamp", description="", price=1, active=True, tags=None, date_created=None),
        Product(id=2, name="Lamp", description="a lamp", price=1, active=True, tags=None, date_created=None),
    ]
    page = engine.process(records, search=SearchSpec(query="lamp"), sort=by(("_score", SortDirection.ASC)))

    assert [p.id for p in page.items] == [1, 2]


def test_empty_search_keeps_input_order_with_zero_scores(engine, products):
    page = engine.process(products, OffsetPagination(page_size=100), search=SearchSpec(query=""))

    assert page.items == products
    assert all(r.score == 0 for r in page.search_results)


def test_input_collection_untouched(engine, products):
    before = list(products)
    engine.process(products, sort=by(("name", SortDirection.DESC)), search=SearchSpec(query="a"))
    assert products == before


def test_accepts_generators(engine, products):
    page = engine.process(p for p in products)
    assert page.total == 12


def test_stage_is_recorded_on_type_mismatch(engine, products):
    spec = FilterSpec(predicates=[Predicate(field="active", operator=Op.CONTAINS, value="t")])

    with pytest.raises(TypeMismatchError) as exc:
        engine.process(products, filters=spec)

    assert exc.value.stage == "filter"


def test_bad_cursor_fails_before_work(engine, products):
    with pytest.raises(InvalidCursorError) as exc:
        engine.process(products, CursorPagination(cursor="garbage", page_size=5))

    assert exc.value.stage == "paginate"


def test_cursor_is_bound_to_its_query(engine, products):
    first = engine.process(products, CursorPagination(page_size=5), sort=by(("name", SortDirection.ASC)))

    with pytest.raises(InvalidCursorError):
        engine.process(
            products,
            CursorPagination(cursor=first.pagination.next_cursor, page_size=5),
            sort=by(("price", SortDirection.ASC)),
        )


def test_invalid_page(engine, products):
    with pytest.raises(InvalidPaginationError) as exc:
        engine.process(products, OffsetPagination(page=0))

    assert exc.value.stage == "paginate"


def test_score_sort_without_search(engine, products):
    with pytest.raises(InvalidFieldError) as exc:
        engine.process(products, sort=by(("_score", SortDirection.DESC)))

    assert exc.value.stage == "sort"


# ------------------------------------------------------
# SPARSE RECORDS
# ------------------------------------------------------

SPARSE = [{"name": "a", "price": 2}, {"name": "b"}, {"name": "c", "price": 1}]


def test_sort_over_records_missing_the_key():
    page = process(SPARSE, FieldWhitelist(["name", "price"]), sort=by(("price", SortDirection.ASC)))
    assert [r["name"] for r in page.items] == ["c", "a", "b"]


def test_filter_skips_records_missing_the_field():
    spec = FilterSpec(predicates=[Predicate(field="price", operator=Op.GREATER_OR_EQUAL, value=0)])
    page = process(SPARSE, FieldWhitelist(["name", "price"]), filters=spec)

    assert [r["name"] for r in page.items] == ["a", "c"]


def test_search_over_records_missing_a_field():
    records = [{"name": "lamp", "description": "desk lamp"}, {"name": "lamp shade"}]
    page = process(records, FieldWhitelist(["name", "description"]), search=SearchSpec(query="lamp"))

    assert [r["name"] for r in page.items] == ["lamp", "lamp shade"]
    assert page.search_metrics.field_match_counts == {"name": 2, "description": 1}
