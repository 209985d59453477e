import json


def png(name="image.png"):
    return (name, b"\x89PNG\r\n\x1a\nfake-image-bytes", "image/png")


def create_category(client, headers, name="Tools"):
    res = client.post(
        "/api/admin/categories",
        data={"name": name},
        files={"image": png("category.png")},
        headers=headers,
    )
    assert res.status_code == 200, res.text
    return res.json()["categoryId"]


def create_product(
    client,
    headers,
    name="Wrench",
    category="Tools",
    variants=None,
    gallery=0,
    description="Steel",
):
    data = {"categoryName": category, "productName": name, "description": description}
    if variants is not None:
        data["variants"] = json.dumps(variants)
    files = [("image", png("main.png"))]
    files += [("gallery", png(f"gallery-{i}.png")) for i in range(gallery)]
    res = client.post("/api/admin/products", data=data, files=files, headers=headers)
    assert res.status_code == 200, res.text
    return res.json()["productId"]
