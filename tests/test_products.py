import json
import re
from pathlib import Path

from catalog_api.core.config import get_settings
from catalog_api.core.storage_utils import LocalImageStorage, get_image_storage
from catalog_api.main import app
from factories import create_category, create_product, png


def edit_view(client, headers, pid):
    res = client.get(f"/api/admin/products/{pid}/edit", headers=headers)
    assert res.status_code == 200, res.text
    return res.json()


def test_create_product_end_to_end(client, admin_headers):
    create_category(client, admin_headers, "Tools")
    pid = create_product(
        client,
        admin_headers,
        name="Wrench",
        variants=[{"price": "10", "stock": "5", "attributes": [{"name": "Size", "value": "M"}]}],
        gallery=2,
    )

    view = edit_view(client, admin_headers, pid)
    assert view["product"]["name"] == "Wrench"
    assert view["product"]["categoryName"] == "Tools"
    assert [img["sortOrder"] for img in view["product"]["images"]] == [0, 1]
    assert len(view["variants"]) == 1
    v = view["variants"][0]
    assert (v["price"], v["stock"]) == (10, 5)
    assert v["attributes"] == {"Size": "M"}
    assert re.match(rf"^P{pid}-[0-9A-Z]+-[0-9A-Z]{{4}}$", v["sku"])

    res = client.get(f"/api/public/products/{pid}")
    assert res.status_code == 200
    product = res.json()["product"]
    assert product["categorySlug"] == "tools"
    assert product["image"].startswith("/uploads/products/")
    assert product["variants"][0]["attributes"] == [{"name": "Size", "value": "M"}]
    assert product["variants"][0]["sku"] == v["sku"]


def test_round_trip_two_by_two(client, admin_headers):
    create_category(client, admin_headers)
    pid = create_product(
        client,
        admin_headers,
        variants=[
            {"sku": "A", "price": 1, "stock": 1, "attributes": {"Size": "S", "Color": "Red"}},
            {
                "sku": "B",
                "price": 2,
                "stock": 2,
                "attributes": [{"name": "Size", "value": "L"}, {"name": "Color", "value": "Blue"}],
            },
        ],
        gallery=2,
    )

    product = client.get(f"/api/public/products/{pid}").json()["product"]
    by_sku = {v["sku"]: v for v in product["variants"]}

    assert set(by_sku) == {"A", "B"}
    assert by_sku["A"]["attributes"] == [
        {"name": "Size", "value": "S"},
        {"name": "Color", "value": "Red"},
    ]
    assert by_sku["B"]["attributes"] == [
        {"name": "Size", "value": "L"},
        {"name": "Color", "value": "Blue"},
    ]
    assert len(product["images"]) == 2

    maps = {v["sku"]: v["attributes"] for v in edit_view(client, admin_headers, pid)["variants"]}
    assert maps == {"A": {"Size": "S", "Color": "Red"}, "B": {"Size": "L", "Color": "Blue"}}


def test_create_requires_main_image(client, admin_headers):
    create_category(client, admin_headers)
    res = client.post(
        "/api/admin/products",
        data={"categoryName": "Tools", "productName": "Wrench"},
        headers=admin_headers,
    )
    assert res.status_code == 400
    assert res.json()["detail"] == "Product image required"


def test_create_unknown_category(client, admin_headers):
    res = client.post(
        "/api/admin/products",
        data={"categoryName": "Nope", "productName": "Wrench"},
        files={"image": png()},
        headers=admin_headers,
    )
    assert res.status_code == 404


def test_create_rejects_non_image(client, admin_headers):
    create_category(client, admin_headers)
    res = client.post(
        "/api/admin/products",
        data={"categoryName": "Tools", "productName": "Wrench"},
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=admin_headers,
    )
    assert res.status_code == 400


def test_failed_variant_rolls_back_product(client, admin_headers):
    create_category(client, admin_headers)
    res = client.post(
        "/api/admin/products",
        data={
            "categoryName": "Tools",
            "productName": "Wrench",
            "variants": json.dumps(
                [{"sku": "SAME", "price": 1, "stock": 1}, {"sku": "SAME", "price": 1, "stock": 1}]
            ),
        },
        files={"image": png()},
        headers=admin_headers,
    )
    assert res.status_code == 500
    products = client.get("/api/admin/products", headers=admin_headers).json()["products"]
    assert products == []


def test_invalid_variants_json(client, admin_headers):
    create_category(client, admin_headers)
    res = client.post(
        "/api/admin/products",
        data={"categoryName": "Tools", "productName": "Wrench", "variants": "{not json"},
        files={"image": png()},
        headers=admin_headers,
    )
    assert res.status_code == 400


def test_update_prunes_gallery_to_keep_list(client, admin_headers):
    create_category(client, admin_headers)
    pid = create_product(client, admin_headers, gallery=4)
    ids = [img["id"] for img in edit_view(client, admin_headers, pid)["product"]["images"]]
    assert len(ids) == 4

    res = client.put(
        f"/api/admin/products/{pid}",
        data={"keepImageIds": json.dumps([ids[1], ids[3]])},
        headers=admin_headers,
    )
    assert res.status_code == 200, res.text

    images = edit_view(client, admin_headers, pid)["product"]["images"]
    assert [img["id"] for img in images] == [ids[1], ids[3]]


def test_update_appends_after_max_sort_order(client, admin_headers):
    create_category(client, admin_headers)
    pid = create_product(client, admin_headers, gallery=2)

    res = client.put(
        f"/api/admin/products/{pid}",
        files=[("gallery", png("new.png"))],
        headers=admin_headers,
    )
    assert res.status_code == 200, res.text

    images = edit_view(client, admin_headers, pid)["product"]["images"]
    assert [img["sortOrder"] for img in images] == [0, 1, 2]


def test_empty_keep_list_clears_gallery(client, admin_headers):
    create_category(client, admin_headers)
    pid = create_product(client, admin_headers, gallery=2)

    client.put(
        f"/api/admin/products/{pid}", data={"keepImageIds": "[]"}, headers=admin_headers
    )
    assert edit_view(client, admin_headers, pid)["product"]["images"] == []


def test_invalid_keep_list(client, admin_headers):
    create_category(client, admin_headers)
    pid = create_product(client, admin_headers)
    res = client.put(
        f"/api/admin/products/{pid}", data={"keepImageIds": "oops"}, headers=admin_headers
    )
    assert res.status_code == 400


def test_partial_update_keeps_other_fields(client, admin_headers):
    create_category(client, admin_headers)
    pid = create_product(client, admin_headers, description="Forged steel")

    res = client.put(
        f"/api/admin/products/{pid}",
        data={"productName": "Big Wrench", "description": ""},
        headers=admin_headers,
    )
    assert res.status_code == 200
    assert res.json()["message"] == "Product updated successfully"

    product = edit_view(client, admin_headers, pid)["product"]
    assert product["name"] == "Big Wrench"
    assert product["description"] == "Forged steel"
    assert product["categoryName"] == "Tools"


def test_update_moves_category(client, admin_headers):
    create_category(client, admin_headers, "Tools")
    create_category(client, admin_headers, "Garden")
    pid = create_product(client, admin_headers)

    client.put(
        f"/api/admin/products/{pid}", data={"categoryName": "Garden"}, headers=admin_headers
    )
    assert edit_view(client, admin_headers, pid)["product"]["categoryName"] == "Garden"


def test_update_variants_patch_and_create(client, admin_headers):
    create_category(client, admin_headers)
    pid = create_product(
        client,
        admin_headers,
        variants=[
            {"sku": "A", "price": 1, "stock": 1, "attributes": {"Size": "S"}},
            {"sku": "B", "price": 2, "stock": 2, "attributes": {"Size": "M"}},
        ],
    )
    variants = edit_view(client, admin_headers, pid)["variants"]
    a = next(v for v in variants if v["sku"] == "A")

    res = client.put(
        f"/api/admin/products/{pid}",
        data={
            "variants": json.dumps(
                [
                    {"id": a["variantId"], "price": 9, "attributes": {"Size": "XL"}},
                    {"sku": "C", "price": 3, "stock": 3},
                ]
            )
        },
        headers=admin_headers,
    )
    assert res.status_code == 200, res.text

    by_sku = {v["sku"]: v for v in edit_view(client, admin_headers, pid)["variants"]}
    assert set(by_sku) == {"A", "B", "C"}
    assert by_sku["A"]["price"] == 9
    assert by_sku["A"]["stock"] == 1
    assert by_sku["A"]["attributes"] == {"Size": "XL"}
    assert by_sku["B"]["attributes"] == {"Size": "M"}


def test_update_variant_of_other_product(client, admin_headers):
    create_category(client, admin_headers)
    first = create_product(client, admin_headers, variants=[{"sku": "A", "price": 1, "stock": 1}])
    second = create_product(client, admin_headers, name="Hammer")
    vid = edit_view(client, admin_headers, first)["variants"][0]["variantId"]

    res = client.put(
        f"/api/admin/products/{second}",
        data={"variants": json.dumps([{"id": vid, "price": 5}])},
        headers=admin_headers,
    )
    assert res.status_code == 404


def test_update_unknown_product(client, admin_headers):
    res = client.put(
        "/api/admin/products/999", data={"productName": "X"}, headers=admin_headers
    )
    assert res.status_code == 404


def test_delete_product_removes_children(client, admin_headers):
    create_category(client, admin_headers)
    pid = create_product(
        client,
        admin_headers,
        variants=[{"sku": "A", "price": 1, "stock": 1, "attributes": {"Size": "S"}}],
        gallery=2,
    )

    res = client.delete(f"/api/admin/products/{pid}", headers=admin_headers)
    assert res.status_code == 200
    assert res.json()["deleted"] == 1

    assert client.get(f"/api/public/products/{pid}").status_code == 404
    assert client.get(f"/api/admin/products/{pid}/edit", headers=admin_headers).status_code == 404
    assert client.get(f"/api/public/products/{pid}/variants").json()["variants"] == []

    # the SKU is free again
    pid2 = create_product(client, admin_headers, variants=[{"sku": "A", "price": 1, "stock": 1}])
    skus = [v["sku"] for v in client.get(f"/api/public/products/{pid2}/variants").json()["variants"]]
    assert skus == ["A"]


def test_delete_unknown_product(client, admin_headers):
    assert client.delete("/api/admin/products/999", headers=admin_headers).status_code == 404


def test_status_toggle_hides_product(client, admin_headers):
    create_category(client, admin_headers)
    pid = create_product(client, admin_headers)

    res = client.patch(
        f"/api/admin/products/{pid}/status", json={"isActive": False}, headers=admin_headers
    )
    assert res.status_code == 200
    assert res.json()["updated"] == 1

    assert client.get(f"/api/public/products/{pid}").status_code == 404
    products = client.get("/api/admin/products", headers=admin_headers).json()["products"]
    assert products[0]["isActive"] is False


def test_status_unknown_product(client, admin_headers):
    res = client.patch(
        "/api/admin/products/999/status", json={"isActive": True}, headers=admin_headers
    )
    assert res.status_code == 404


def test_admin_list_newest_first(client, admin_headers):
    create_category(client, admin_headers)
    first = create_product(client, admin_headers, name="Wrench")
    second = create_product(client, admin_headers, name="Hammer")

    products = client.get("/api/admin/products", headers=admin_headers).json()["products"]
    assert [p["id"] for p in products] == [second, first]


class FlakyStorage(LocalImageStorage):
    """Local storage that fails for one specific file name."""

    def save(self, folder, upload):
        if upload.filename == "broken.png":
            raise OSError("disk full")
        return super().save(folder, upload)


def test_gallery_skips_failed_image(client, admin_headers, tmp_path):
    create_category(client, admin_headers)
    app.dependency_overrides[get_image_storage] = lambda: FlakyStorage(tmp_path)

    res = client.post(
        "/api/admin/products",
        data={"categoryName": "Tools", "productName": "Wrench"},
        files=[
            ("image", png("main.png")),
            ("gallery", png("one.png")),
            ("gallery", png("broken.png")),
            ("gallery", png("three.png")),
        ],
        headers=admin_headers,
    )
    assert res.status_code == 200, res.text
    pid = res.json()["productId"]

    images = edit_view(client, admin_headers, pid)["product"]["images"]
    assert len(images) == 2
    assert [img["sortOrder"] for img in images] == [0, 1]


def test_editor_upload_returns_absolute_url(client, admin_headers):
    res = client.post(
        "/api/admin/upload-image", files={"file": png("inline.png")}, headers=admin_headers
    )
    assert res.status_code == 200
    assert res.json()["location"].startswith("http://localhost:8000/uploads/products/")


def test_editor_upload_requires_file(client, admin_headers):
    res = client.post("/api/admin/upload-image", headers=admin_headers)
    assert res.status_code == 400


def stored_product_files():
    folder = Path(get_settings().UPLOAD_DIR) / "products"
    return sorted(folder.glob("*")) if folder.exists() else []


def test_failed_create_leaves_no_files(client, admin_headers):
    create_category(client, admin_headers)
    before = stored_product_files()

    res = client.post(
        "/api/admin/products",
        data={
            "categoryName": "Tools",
            "productName": "Wrench",
            "variants": json.dumps(
                [{"sku": "SAME", "price": 1, "stock": 1}, {"sku": "SAME", "price": 1, "stock": 1}]
            ),
        },
        files=[("image", png()), ("gallery", png("g1.png")), ("gallery", png("g2.png"))],
        headers=admin_headers,
    )
    assert res.status_code == 500
    assert stored_product_files() == before


def test_failed_update_leaves_no_new_files(client, admin_headers):
    create_category(client, admin_headers)
    create_product(client, admin_headers, name="Hammer", variants=[{"sku": "TAKEN", "price": 1, "stock": 1}])
    pid = create_product(client, admin_headers, gallery=1)
    before = stored_product_files()
    view_before = edit_view(client, admin_headers, pid)

    res = client.put(
        f"/api/admin/products/{pid}",
        data={"variants": json.dumps([{"sku": "TAKEN", "price": 1, "stock": 1}])},
        files=[("image", png("new-main.png")), ("gallery", png("new-gallery.png"))],
        headers=admin_headers,
    )
    assert res.status_code == 500
    assert stored_product_files() == before
    assert edit_view(client, admin_headers, pid) == view_before


def test_failed_update_with_foreign_variant_leaves_no_new_files(client, admin_headers):
    create_category(client, admin_headers)
    pid = create_product(client, admin_headers)
    before = stored_product_files()

    res = client.put(
        f"/api/admin/products/{pid}",
        data={"variants": json.dumps([{"id": 9999, "price": 5}])},
        files=[("image", png("new-main.png"))],
        headers=admin_headers,
    )
    assert res.status_code == 404
    assert stored_product_files() == before
