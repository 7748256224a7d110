from __future__ import annotations

from conftest import make_order, make_product
from src.application.catalog import collation_key, filter_admin_products, filter_and_sort, filter_orders
from src.domain.entities import FilterOptions, OrderStatus, ProductCategory, SortKey


def _catalog():
    return [
        make_product("a", name="Heineken", brand="Heineken", price=7.99, tags=["lager"], distributor_id="D1"),
        make_product("b", name="Vinho Tinto", brand="Concha y Toro", price=59.9, category=ProductCategory.VINHO,
                     description="Cabernet encorpado", distributor_id="D2", featured=True),
        make_product("c", name="Água Crystal", brand="Crystal", price=2.5, category=ProductCategory.AGUA, distributor_id="D1"),
        make_product("d", name="Red Bull", brand="Red Bull", price=9.5, category=ProductCategory.ENERGETICO,
                     distributor_id="D2", featured=True),
    ]


def test_no_query_no_options_returns_input_unchanged():
    products = _catalog()
    assert filter_and_sort(products) == products
    assert filter_and_sort(products, "   ", FilterOptions()) == products


def test_empty_input():
    assert filter_and_sort([], "beer", FilterOptions(sort_by=SortKey.NAME)) == []


def test_query_matches_name_brand_description_and_tags_case_insensitive():
    products = _catalog()
    assert [p.id for p in filter_and_sort(products, "HEINE")] == ["a"]
    assert [p.id for p in filter_and_sort(products, "concha")] == ["b"]
    assert [p.id for p in filter_and_sort(products, "cabernet")] == ["b"]
    assert [p.id for p in filter_and_sort(products, "Lager")] == ["a"]
    assert filter_and_sort(products, "cachaça") == []


def test_category_and_distributor_filters():
    products = _catalog()
    assert [p.id for p in filter_and_sort(products, options=FilterOptions(category=ProductCategory.VINHO))] == ["b"]
    assert [p.id for p in filter_and_sort(products, options=FilterOptions(distributor_id="D2"))] == ["b", "d"]


def test_price_range_needs_both_bounds():
    products = _catalog()
    both = filter_and_sort(products, options=FilterOptions(min_price=5, max_price=10))
    assert [p.id for p in both] == ["a", "d"]

    # a single bound is ignored
    assert filter_and_sort(products, options=FilterOptions(min_price=50)) == products
    assert filter_and_sort(products, options=FilterOptions(max_price=5)) == products


def test_price_range_bounds_are_inclusive():
    products = _catalog()
    out = filter_and_sort(products, options=FilterOptions(min_price=2.5, max_price=7.99))
    assert [p.id for p in out] == ["a", "c"]


def test_price_sorts():
    products = _catalog()
    asc = filter_and_sort(products, options=FilterOptions(sort_by=SortKey.PRICE_ASC))
    desc = filter_and_sort(products, options=FilterOptions(sort_by=SortKey.PRICE_DESC))
    assert [p.price for p in asc] == [2.5, 7.99, 9.5, 59.9]
    assert [p.price for p in desc] == [59.9, 9.5, 7.99, 2.5]


def test_price_sort_is_stable_for_equal_prices():
    products = [make_product("x", price=5), make_product("y", price=5), make_product("z", price=1)]
    out = filter_and_sort(products, options=FilterOptions(sort_by=SortKey.PRICE_ASC))
    assert [p.id for p in out] == ["z", "x", "y"]


def test_name_sort_ignores_accents_and_case():
    products = _catalog()
    out = filter_and_sort(products, options=FilterOptions(sort_by=SortKey.NAME))
    assert [p.name for p in out] == ["Água Crystal", "Heineken", "Red Bull", "Vinho Tinto"]


def test_collation_puts_lower_case_first():
    assert sorted(["Bravo", "bravo", "alpha"], key=collation_key) == ["alpha", "bravo", "Bravo"]
    assert sorted(["égua", "egua"], key=collation_key) == ["egua", "égua"]


def test_rating_sort_puts_featured_first_and_keeps_order():
    out = filter_and_sort(_catalog(), options=FilterOptions(sort_by=SortKey.RATING))
    assert [p.id for p in out] == ["b", "d", "a", "c"]


def test_filtering_is_idempotent():
    opts = FilterOptions(min_price=1, max_price=60, sort_by=SortKey.PRICE_DESC)
    once = filter_and_sort(_catalog(), "r", opts)
    assert filter_and_sort(once, "r", opts) == once


def test_input_is_not_mutated():
    products = _catalog()
    before = list(products)
    filter_and_sort(products, options=FilterOptions(sort_by=SortKey.PRICE_DESC))
    assert products == before


def test_admin_product_filter():
    products = _catalog()
    assert [p.id for p in filter_admin_products(products, "red")] == ["d"]
    assert [p.id for p in filter_admin_products(products, "", ProductCategory.AGUA)] == ["c"]
    assert filter_admin_products(products) == products


def test_order_filter_by_text_and_status():
    orders = [
        make_order("aaaa00000001", customer_name="Ana"),
        make_order("bbbb00000002", customer_email="joao@example.com", status=OrderStatus.DELIVERED),
    ]
    assert [o.id for o in filter_orders(orders, "ana")] == ["aaaa00000001"]
    assert [o.id for o in filter_orders(orders, "JOAO@")] == ["bbbb00000002"]
    assert [o.id for o in filter_orders(orders, "bbbb")] == ["bbbb00000002"]
    assert [o.id for o in filter_orders(orders, status=OrderStatus.PENDING)] == ["aaaa00000001"]


def test_every_name_substring_finds_its_product():
    products = _catalog()
    for p in products:
        name = p.name
        for i in range(len(name)):
            for j in range(i + 1, len(name) + 1):
                s = name[i:j]
                if not s.strip():
                    continue
                assert p in filter_and_sort(products, s), s
