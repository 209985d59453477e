from catalog_api.core.config import get_settings
from catalog_api.services.catalog_aggregator import aggregate_products, group_variant_rows


def row(**overrides):
    base = {
        "product_id": 1,
        "product_name": "Wrench",
        "product_image": "/uploads/products/main.png",
        "product_description": "Steel",
        "product_additional_description": None,
        "category_id": 3,
        "category_name": "Tools",
        "category_slug": "tools",
        "is_active": True,
        "variant_id": None,
        "variant_sku": None,
        "variant_price": None,
        "variant_stock": None,
        "attr_name": None,
        "attr_value": None,
        "img_id": None,
        "img_path": None,
        "img_sort": None,
    }
    base.update(overrides)
    return base


def variant(vid, sku, name, value, img_id, img_sort):
    return row(
        variant_id=vid,
        variant_sku=sku,
        variant_price=10.0,
        variant_stock=5,
        attr_name=name,
        attr_value=value,
        img_id=img_id,
        img_path=f"/uploads/products/{img_id}.png",
        img_sort=img_sort,
    )


def test_fan_out_is_deduplicated():
    # 2 variants x 2 attributes x 2 images => 8 rows
    rows = []
    for vid, sku in ((11, "A"), (12, "B")):
        for name, value in (("Size", f"S{vid}"), ("Color", f"C{vid}")):
            for img_id, sort in ((101, 0), (102, 1)):
                rows.append(variant(vid, sku, name, value, img_id, sort))

    products = aggregate_products(rows)

    assert len(products) == 1
    product = products[0]
    assert [v.id for v in product.variants] == [11, 12]
    for v in product.variants:
        assert len(v.attributes) == 2
    assert [img.id for img in product.images] == [101, 102]


def test_product_order_follows_rows():
    rows = [row(product_id=3), row(product_id=1), row(product_id=2), row(product_id=1)]
    assert [p.id for p in aggregate_products(rows)] == [3, 1, 2]


def test_product_without_children():
    products = aggregate_products([row()])
    assert products[0].variants == []
    assert products[0].images == []
    assert products[0].category_name == "Tools"


def test_images_sorted_by_sort_order():
    rows = [
        variant(11, "A", "Size", "M", 103, 2),
        variant(11, "A", "Size", "M", 101, 0),
        variant(11, "A", "Size", "M", 102, 1),
    ]
    images = aggregate_products(rows)[0].images
    assert [img.sort_order for img in images] == [0, 1, 2]
    assert [img.id for img in images] == [101, 102, 103]


def test_equal_sort_orders_keep_first_seen_order():
    rows = [
        variant(11, "A", "Size", "M", 105, 0),
        variant(11, "A", "Size", "M", 104, 0),
    ]
    assert [img.id for img in aggregate_products(rows)[0].images] == [105, 104]


def test_variant_without_attributes_is_kept():
    rows = [row(variant_id=11, variant_sku="A", variant_price=1.5, variant_stock=2)]
    product = aggregate_products(rows)[0]
    assert len(product.variants) == 1
    assert product.variants[0].attributes == []
    assert product.variants[0].price == 1.5


def test_production_paths_get_public_prefix(monkeypatch):
    monkeypatch.setattr(get_settings(), "ENVIRONMENT", "production")
    rows = [
        row(img_id=1, img_path="/uploads/products/a.png", img_sort=0),
        row(img_id=2, img_path="https://cdn.example.com/b.png", img_sort=1),
    ]
    product = aggregate_products(rows)[0]
    assert product.image == "/backend/uploads/products/main.png"
    assert product.images[0].image == "/backend/uploads/products/a.png"
    assert product.images[1].image == "https://cdn.example.com/b.png"


def test_development_paths_unchanged():
    product = aggregate_products([row()])[0]
    assert product.image == "/uploads/products/main.png"


def test_group_variant_rows_builds_attribute_map():
    rows = [
        {"variant_id": 1, "sku": "A", "price": 2.0, "stock": 1, "attr_name": "Size", "attr_value": "M"},
        {"variant_id": 1, "sku": "A", "price": 2.0, "stock": 1, "attr_name": "Color", "attr_value": "Red"},
        {"variant_id": 2, "sku": "B", "price": 3.0, "stock": 0, "attr_name": None, "attr_value": None},
    ]
    grouped = group_variant_rows(rows)
    assert grouped[0]["attributes"] == {"Size": "M", "Color": "Red"}
    assert grouped[1]["attributes"] == {}
