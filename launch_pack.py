"""Bundle finalized products into a downloadable ZIP launch pack.

Layout for one product (files at the archive root):
  listing_copy.txt
  design.png
  Mockups/mockup_1.jpg ... mockup_N.jpg

With several products each gets its own folder named after its concept.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from typing import List, Tuple

from forge_core import FinalizedProduct, ListingCopy
from remote_call import ForgeError

log = logging.getLogger(__name__)

MULTI_PACK_NAME = "Alchemist-Forge-Launch-Pack.zip"


def safe_title(title: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "-", title)


def listing_copy_text(copy: ListingCopy) -> str:
    return (
        f"Title:\n{copy.title}\n\n"
        f"Description:\n{copy.description}\n\n"
        f"Variations:\n" + "\n".join(copy.variations) + "\n\n"
        f"Tags:\n" + ", ".join(copy.tags)
    )


def build_launch_pack(products: List[FinalizedProduct]) -> Tuple[str, bytes]:
    """Return (file name, zip bytes) for ``products``."""
    if not products:
        raise ForgeError("Missing assets to generate a package.")

    single = len(products) == 1
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for product in products:
            folder = "" if single else f"{safe_title(product.concept.title)}/"
            zf.writestr(f"{folder}listing_copy.txt", listing_copy_text(product.listing_copy))
            zf.writestr(f"{folder}design.png", product.design.image.data)
            for i, mockup in enumerate(product.mockups, start=1):
                zf.writestr(f"{folder}Mockups/mockup_{i}.jpg", mockup.data)

    name = f"{safe_title(products[0].concept.title)}-Assets.zip" if single else MULTI_PACK_NAME
    log.info("Launch pack built: %s  (%d product(s), %d bytes)", name, len(products), buf.tell())
    return name, buf.getvalue()
