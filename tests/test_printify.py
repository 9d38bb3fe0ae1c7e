"""Printify client tests against a recorded session."""

import base64

import pytest

from printify import (
    BASE_URL,
    ImageUploadError,
    PrintifyClient,
    ProductCreationError,
    PublishError,
    ShopLookupError,
    build_product_payload,
)


class _Resp:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class _Session:
    def __init__(self, *responses):
        self.headers = {}
        self.responses = list(responses)
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append(("GET", url, kwargs))
        return self.responses.pop(0)

    def post(self, url, **kwargs):
        self.calls.append(("POST", url, kwargs))
        return self.responses.pop(0)


def test_client_requires_a_token():
    with pytest.raises(PublishError):
        PrintifyClient("", session=_Session())


def test_client_sets_bearer_headers():
    session = _Session()
    PrintifyClient("tok-1", session=session)
    assert session.headers["Authorization"] == "Bearer tok-1"
    assert session.headers["Content-Type"] == "application/json"


def test_list_shops_normalises_ids():
    session = _Session(_Resp(200, [{"id": 5551, "title": "Holiday Shop"}]))
    shops = PrintifyClient("tok", session=session).list_shops()
    assert shops == [{"id": "5551", "title": "Holiday Shop"}]
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("GET", f"{BASE_URL}/shops.json")
    assert kwargs["timeout"] == 60


def test_list_shops_failure_carries_payload():
    session = _Session(_Resp(401, {"error": "Unauthenticated"}))
    with pytest.raises(ShopLookupError) as info:
        PrintifyClient("tok", session=session).list_shops()
    assert info.value.status_code == 401
    assert str(info.value).startswith("Failed to fetch Printify shops. Check your API Token")
    assert "Unauthenticated" in str(info.value)


def test_upload_image_sends_base64_contents():
    session = _Session(_Resp(200, {"id": 987}))
    image_id = PrintifyClient("tok", session=session).upload_image(b"\x89PNG data", "Oh_So_Merry.png")

    assert image_id == "987"
    method, url, kwargs = session.calls[0]
    assert (method, url) == ("POST", f"{BASE_URL}/uploads/images.json")
    assert kwargs["json"]["file_name"] == "Oh_So_Merry.png"
    assert base64.b64decode(kwargs["json"]["contents"]) == b"\x89PNG data"


def test_upload_failure_uses_text_body_when_not_json():
    session = _Session(_Resp(500, None, text="gateway exploded"))
    with pytest.raises(ImageUploadError) as info:
        PrintifyClient("tok", session=session).upload_image(b"x", "x.png")
    assert info.value.status_code == 500
    assert str(info.value) == "Image upload failed: gateway exploded"


def test_create_product_posts_to_shop():
    session = _Session(_Resp(200, {"id": "prod-7", "title": "Cozy Mug"}))
    created = PrintifyClient("tok", session=session).create_product(
        "5551", "Mug", "img-1", "Cozy Mug", "Warm.", ["mug", "gift"],
    )
    assert created["id"] == "prod-7"
    method, url, kwargs = session.calls[0]
    assert url == f"{BASE_URL}/shops/5551/products.json"
    assert kwargs["json"]["blueprint_id"] == 68


def test_create_product_failure():
    session = _Session(_Resp(400, {"errors": {"title": "too long"}}))
    with pytest.raises(ProductCreationError) as info:
        PrintifyClient("tok", session=session).create_product("1", "Mug", "i", "t", "d", [])
    assert info.value.payload == {"errors": {"title": "too long"}}
    assert isinstance(info.value, PublishError)


def test_product_payload_for_hoodie():
    payload = build_product_payload("Hoodie", "img-9", "Title", "Desc", ("a", "b"))

    assert payload["blueprint_id"] == 77
    assert payload["print_provider_id"] == 29
    assert payload["variants"] == [
        {"id": vid, "price": 2500, "is_enabled": True} for vid in (45426, 45427, 45428)
    ]
    (area,) = payload["print_areas"]
    assert area["variant_ids"] == [45426, 45427, 45428]
    (placeholder,) = area["placeholders"]
    assert placeholder["position"] == "front"
    assert placeholder["images"] == [{"id": "img-9", "x": 0.5, "y": 0.5, "scale": 0.8, "angle": 0}]
    assert payload["tags"] == ["a", "b"]


def test_product_payload_unknown_type():
    with pytest.raises(PublishError, match="Printify mapping not found for Blanket"):
        build_product_payload("Blanket", "img", "t", "d", [])
