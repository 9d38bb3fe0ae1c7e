"""Printify REST client: shop lookup, image upload, product creation."""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, List, Optional

import requests

from catalog import DEFAULT_PRICE_CENTS, PRINT_IMAGE_SCALE, PRINTIFY_PRODUCT_MAP
from remote_call import ForgeError

log = logging.getLogger(__name__)

BASE_URL = "https://api.printify.com/v1"
REQUEST_TIMEOUT = 60


class PublishError(ForgeError):
    """Publishing could not proceed (no shop, unknown product type, ...)."""


class PrintifyError(PublishError):
    """Printify answered with a non-2xx status."""

    prefix = "Printify request failed"

    def __init__(self, status_code: int, payload: Any) -> None:
        self.status_code = status_code
        self.payload = payload
        super().__init__(f"{self.prefix}: {payload}")


class ShopLookupError(PrintifyError):
    prefix = "Failed to fetch Printify shops. Check your API Token"


class ImageUploadError(PrintifyError):
    prefix = "Image upload failed"


class ProductCreationError(PrintifyError):
    prefix = "Product creation failed"


def _error_payload(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class PrintifyClient:
    """Thin wrapper over the Printify v1 API for one bearer token."""

    def __init__(
        self,
        token: str,
        session: Optional[requests.Session] = None,
        base_url: str = BASE_URL,
    ) -> None:
        if not token:
            raise PublishError("A Printify API token is required to publish.")
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        })

    def list_shops(self) -> List[Dict]:
        resp = self.session.get(f"{self.base_url}/shops.json", timeout=REQUEST_TIMEOUT)
        if not resp.ok:
            raise ShopLookupError(resp.status_code, _error_payload(resp))
        shops = resp.json()
        return [{"id": str(s["id"]), "title": s.get("title", "")} for s in shops]

    def upload_image(self, data: bytes, file_name: str) -> str:
        resp = self.session.post(
            f"{self.base_url}/uploads/images.json",
            json={
                "file_name": file_name,
                "contents": base64.b64encode(data).decode("ascii"),
            },
            timeout=REQUEST_TIMEOUT,
        )
        if not resp.ok:
            raise ImageUploadError(resp.status_code, _error_payload(resp))
        image_id = resp.json()["id"]
        log.info("Printify upload: file=%s  id=%s", file_name, image_id)
        return str(image_id)

    def create_product(
        self,
        shop_id: str,
        product_type: str,
        image_id: str,
        title: str,
        description: str,
        tags: List[str],
    ) -> Dict:
        payload = build_product_payload(product_type, image_id, title, description, tags)
        resp = self.session.post(
            f"{self.base_url}/shops/{shop_id}/products.json",
            json=payload,
            timeout=REQUEST_TIMEOUT,
        )
        if not resp.ok:
            raise ProductCreationError(resp.status_code, _error_payload(resp))
        product = resp.json()
        log.info("Printify product created: shop=%s  id=%s", shop_id, product.get("id"))
        return product


def build_product_payload(
    product_type: str,
    image_id: str,
    title: str,
    description: str,
    tags: List[str],
) -> Dict:
    mapping = PRINTIFY_PRODUCT_MAP.get(product_type)
    if not mapping:
        raise PublishError(f"Printify mapping not found for {product_type}")

    return {
        "title": title,
        "description": description,
        "blueprint_id": mapping["blueprint_id"],
        "print_provider_id": mapping["print_provider_id"],
        "variants": [
            {"id": vid, "price": DEFAULT_PRICE_CENTS, "is_enabled": True}
            for vid in mapping["variants"]
        ],
        "print_areas": [
            {
                "variant_ids": list(mapping["variants"]),
                "placeholders": [
                    {
                        "position": mapping["placement"],
                        "images": [
                            {
                                "id": image_id,
                                "x": 0.5,
                                "y": 0.5,
                                "scale": PRINT_IMAGE_SCALE,
                                "angle": 0,
                            },
                        ],
                    },
                ],
            },
        ],
        "tags": list(tags),
    }
