"""Core forge pipeline. Used by both the web app and CLI.

Stages, in the order a session runs them:

  ideate            theme + style + product type -> concepts
  render_designs    concepts -> isolated design artwork
  finalize_assets   designs -> listing copy + photoreal mockups
  publish           finalized product -> live Printify listing

Every remote call goes through a RemoteCallExecutor, and calls are always
issued one at a time.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from catalog import (
    ALCHEMIST_SYSTEM_INSTRUCTION,
    CONCEPT_SCHEMA,
    LISTING_SCHEMA,
    MOCKUP_COUNT,
    mockup_prompts,
    style_prompt,
)
from printify import PrintifyClient, PublishError
from providers import RenderedImage
from remote_call import GenerationError, RemoteCallExecutor

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def new_id() -> str:
    return uuid.uuid4().hex[:8]


def _string_tuple(value: Any) -> Tuple[str, ...]:
    """A model may answer a list field with a bare string; keep it whole."""
    if value is None:
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(str(v) for v in value)
    return (str(value),)


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Concept:
    title: str
    display_text: str
    fusion: Tuple[str, ...]
    vision: str
    why_it_works: str
    id: str = field(default_factory=new_id)

    @classmethod
    def from_dict(cls, data: Any) -> "Concept":
        if not isinstance(data, dict):
            raise GenerationError("Concept response was not an object.")
        try:
            return cls(
                title=str(data["conceptTitle"]),
                display_text=str(data["displayText"]),
                fusion=_string_tuple(data["fusion"]),
                vision=str(data["vision"]),
                why_it_works=str(data["whyItWorks"]),
            )
        except KeyError as exc:
            raise GenerationError(f"Concept response is missing field {exc}.") from exc

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "conceptTitle": self.title,
            "displayText": self.display_text,
            "fusion": list(self.fusion),
            "vision": self.vision,
            "whyItWorks": self.why_it_works,
        }


@dataclass(frozen=True)
class DesignAsset:
    concept: Concept
    style: str
    image: RenderedImage
    id: str = field(default_factory=new_id)


@dataclass(frozen=True)
class ListingCopy:
    """Marketplace copy exactly as returned; length and count limits are not re-checked."""

    title: str
    description: str
    variations: Tuple[str, ...]
    tags: Tuple[str, ...]

    @classmethod
    def from_dict(cls, data: Any) -> "ListingCopy":
        if not isinstance(data, dict):
            raise GenerationError("Listing copy response was not an object.")
        try:
            return cls(
                title=str(data["title"]),
                description=str(data["description"]),
                variations=_string_tuple(data["variations"]),
                tags=_string_tuple(data["tags"]),
            )
        except KeyError as exc:
            raise GenerationError(f"Listing copy response is missing field {exc}.") from exc

    def to_dict(self) -> Dict:
        return {
            "title": self.title,
            "description": self.description,
            "variations": list(self.variations),
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class FinalizationItem:
    design: DesignAsset
    product_type: str


@dataclass
class FinalizedProduct:
    concept: Concept
    design: DesignAsset
    mockups: List[RenderedImage]
    listing_copy: ListingCopy
    product_type: str
    publish_id: Optional[str] = None
    id: str = field(default_factory=new_id)

    def attach_publish_id(self, publish_id: str) -> None:
        if self.publish_id and self.publish_id != publish_id:
            log.warning(
                "Product %s already published as %s; replacing with %s",
                self.id, self.publish_id, publish_id,
            )
        self.publish_id = publish_id

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "concept": self.concept.to_dict(),
            "design_id": self.design.id,
            "mockup_count": len(self.mockups),
            "listing_copy": self.listing_copy.to_dict(),
            "product_type": self.product_type,
            "publish_id": self.publish_id,
        }


# ---------------------------------------------------------------------------
# Prompt builders
# ---------------------------------------------------------------------------

def build_ideation_prompt(theme: str, style: str, product_type: str) -> str:
    return (
        "Based on the 'Holiday Gold Blueprint', generate 3 distinct product concept variations "
        f"for a **{product_type}**. The theme is **{theme}** with a **{style}** aesthetic. "
        "Each variation must include:\n"
        "- 'conceptTitle': A descriptive name for the concept.\n"
        "- 'displayText': A short, commercially appealing, and creative phrase or quote that will "
        "be the central text of the design. **Crucially, this text MUST be a marketable slogan, "
        "NOT a literal description of the design style or theme.** For example, for a "
        "'Geometric Modern' style Christmas design, instead of generating 'Geometric Cheer,' "
        "generate a creative holiday phrase like 'Pixelated Pines' or a classic quote like "
        "'Oh So Merry.' The text should be clever, suitable for the design, and appealing to "
        "Etsy shoppers.\n"
        "- 'fusion': An array of 2-3 keywords that describe the concept's fusion of styles.\n"
        "- 'vision': A one-sentence creative vision for the design.\n"
        "- 'whyItWorks': A brief explanation of why this concept will sell well, based on the "
        "blueprint."
    )


def build_design_prompt(concept: Concept, style: str) -> str:
    quote = concept.display_text
    return f"""**Primary Directive: Create a TRANSPARENT PNG of an ISOLATED graphic.**
- **Output MUST BE a graphic element on a transparent background.**
- **ABSOLUTELY NO MOCKUPS.** Do not show the design on a t-shirt, mug, or any other product.
- **NO BACKGROUNDS.** No colors, textures, or scenes in the background.

**Your Role:** A world-class graphic designer specializing in viral print-on-demand products.

**Task:** Create a design for the following concept.

**Design Details:**
- **Text to Render:** "{quote}"
- **Creative Vision:** {concept.vision}
- **Art Style:** {style}
- **Style Deep Dive:** {style_prompt(style)}

**Execution Rules:**
1.  **Render ONLY the "Text to Render":** The text "{quote}" must be rendered exactly, with no spelling errors. Do not add any other words or text from this prompt. The typography should be the star of the design, perfectly matching the Art Style.
2.  **Compelling Composition:** The layout must be balanced, eye-catching, and work well for the specified product type.
3.  **Commercial Quality:** The final output must be a professional, high-resolution graphic ready for printing.
4.  **No Prompt Leakage:** Do not include any of these instructional labels (like "Text to Render") in the final image itself."""


def build_listing_prompt(concept: Concept) -> str:
    return (
        f"Generate a complete, SEO-optimized Etsy listing for the product concept: {concept.title}. "
        f"The design aesthetic is {', '.join(concept.fusion)}.\n\n"
        "Follow these strict requirements based on the 'Holiday Gold' blueprint:\n"
        "1. **Title:** Create a single, long-tail, keyword-rich title. It MUST be 140 characters "
        "or less.\n"
        "2. **Description:** Write a compelling, SEO-optimized description that tells a story "
        "about the product line, its unique appeal, and its target audience.\n"
        "3. **Variations:** Suggest 2-3 relevant product variations (e.g., color, size) "
        "appropriate for the product type based on the blueprint.\n"
        "4. **Tags:** Provide exactly 13 unique, highly relevant Etsy tags. Each individual tag "
        "MUST be 20 characters or less."
    )


def upload_file_name(title: str) -> str:
    return re.sub(r"[^a-zA-Z0-9]", "_", title) + ".png"


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

class ForgePipeline:
    """Runs forge stages against injected providers, reporting progress events."""

    def __init__(
        self,
        text_generator: Any,
        image_generator: Any,
        settings: Optional[Dict] = None,
        progress_cb: Optional[Callable[[Dict], None]] = None,
        executor: Optional[RemoteCallExecutor] = None,
        commerce_factory: Callable[[str], Any] = PrintifyClient,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        settings = settings or {}
        self.text = text_generator
        self.image = image_generator
        self.progress_cb = progress_cb
        self.commerce_factory = commerce_factory
        self._sleep = sleep

        self.text_model: Optional[str] = settings.get("text_model")
        self.listing_model: Optional[str] = settings.get("listing_model")
        self.image_model: Optional[str] = settings.get("image_model")
        self.design_delay: float = settings.get("design_delay", 1.5)
        self.mockup_delay: float = settings.get("mockup_delay", 1.5)

        self.executor = executor or RemoteCallExecutor(
            max_retries=settings.get("max_retries", 5),
            initial_delay=settings.get("initial_delay", 2.0),
            sleep=sleep,
        )

    # ------------------------------------------------------------------
    # Event helpers
    # ------------------------------------------------------------------

    def _emit(
        self,
        stage: str,
        status: str,
        message: str,
        data: Optional[Dict] = None,
    ) -> None:
        event: Dict[str, Any] = {
            "stage": stage,
            "status": status,
            "message": message,
            "ts": time.time(),
        }
        if data:
            event["data"] = data
        if self.progress_cb:
            self.progress_cb(event)
        lvl = logging.WARNING if status == "failed" else logging.DEBUG
        log.log(lvl, "%s: %s", stage, message)

    # ------------------------------------------------------------------
    # Ideation
    # ------------------------------------------------------------------

    def ideate(self, theme: str, style: str, product_type: str) -> List[Concept]:
        self._emit("ideation", "started", "Fusing your selections into new concepts…")
        prompt = build_ideation_prompt(theme, style, product_type)
        try:
            data = self.executor.call(
                lambda: self.text.generate_structured(
                    prompt, ALCHEMIST_SYSTEM_INSTRUCTION, CONCEPT_SCHEMA, model=self.text_model,
                ),
                label="ideation",
            )
            if not isinstance(data, list):
                raise GenerationError("The AI response did not contain a list of concepts.")
            concepts = [Concept.from_dict(item) for item in data]
        except Exception as exc:
            self._emit("ideation", "failed", f"Ideation failed: {exc}")
            raise

        self._emit(
            "ideation",
            "completed",
            f"{len(concepts)} concept(s) forged",
            {"concepts": [c.to_dict() for c in concepts]},
        )
        return concepts

    # ------------------------------------------------------------------
    # Design rendering
    # ------------------------------------------------------------------

    def render_design(self, concept: Concept, style: str) -> DesignAsset:
        prompt = build_design_prompt(concept, style)
        image = self.executor.call(
            lambda: self.image.generate_image([prompt], model=self.image_model),
            label=f"design {concept.title!r}",
        )
        if image is None:
            raise GenerationError("No image was generated.")
        return DesignAsset(concept=concept, style=style, image=image)

    def render_designs(self, concepts: List[Concept], style: str) -> List[DesignAsset]:
        """Render each concept in turn, pausing between renders to respect rate limits."""
        designs: List[DesignAsset] = []
        total = len(concepts)
        try:
            for i, concept in enumerate(concepts):
                self._emit(
                    "design",
                    "started",
                    f'Forging design {i + 1} of {total}: "{concept.title}"',
                    {"current": i, "total": total},
                )
                designs.append(self.render_design(concept, style))
                if i < total - 1:
                    self._sleep(self.design_delay)
        except Exception as exc:
            self._emit("design", "failed", f"Design rendering failed: {exc}")
            raise

        self._emit("design", "completed", f"{len(designs)} design(s) forged", {"current": total, "total": total})
        return designs

    # ------------------------------------------------------------------
    # Listing copy
    # ------------------------------------------------------------------

    def write_listing_copy(self, concept: Concept) -> ListingCopy:
        prompt = build_listing_prompt(concept)
        data = self.executor.call(
            lambda: self.text.generate_structured(
                prompt, ALCHEMIST_SYSTEM_INSTRUCTION, LISTING_SCHEMA, model=self.listing_model,
            ),
            label=f"listing copy {concept.title!r}",
        )
        return ListingCopy.from_dict(data)

    # ------------------------------------------------------------------
    # Mockups
    # ------------------------------------------------------------------

    def render_mockups(
        self,
        design: DesignAsset,
        product_type: str,
        theme: str,
        concept: Optional[Concept] = None,
        on_step: Optional[Callable[[int], None]] = None,
    ) -> List[RenderedImage]:
        concept = concept or design.concept
        prompts = mockup_prompts(product_type, theme, list(concept.fusion))
        mockups: List[RenderedImage] = []

        for index, prompt in enumerate(prompts):
            image = self.executor.call(
                lambda p=prompt: self.image.generate_image([design.image, p], model=self.image_model),
                label=f"mockup {index + 1}/{len(prompts)}",
            )
            if image is None:
                log.warning("Mockup %d/%d returned no image; skipping", index + 1, len(prompts))
            else:
                mockups.append(image)

            if on_step:
                on_step(index)
            if index < len(prompts) - 1:
                self._sleep(self.mockup_delay)

        if not mockups:
            raise GenerationError("No mockups were generated.")
        return mockups

    # ------------------------------------------------------------------
    # Finalization
    # ------------------------------------------------------------------

    def finalize_assets(
        self,
        items: List[FinalizationItem],
        theme: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[FinalizedProduct]:
        """Listing copy then mockups for every item, in order. All or nothing."""
        total = len(items) * (1 + MOCKUP_COUNT)
        done = 0

        def report(message: str) -> None:
            if on_progress:
                on_progress(done, total)
            self._emit("finalize", "progress", message, {"current": done, "total": total})

        results: List[FinalizedProduct] = []
        try:
            report("Starting finalization…")
            for i, item in enumerate(items):
                concept = item.design.concept
                header = f'Processing design {i + 1} of {len(items)}: "{concept.title}"'

                self._emit("finalize", "started", f"{header}\nWriting compelling copy…")
                listing_copy = self.write_listing_copy(concept)
                done += 1
                report(f"{header}\nListing copy ready")

                def mockup_done(index: int, header: str = header) -> None:
                    nonlocal done
                    done += 1
                    report(f"{header}\nGenerated mockup {index + 1}/{MOCKUP_COUNT}")

                mockups = self.render_mockups(
                    item.design, item.product_type, theme, concept, on_step=mockup_done,
                )
                results.append(FinalizedProduct(
                    concept=concept,
                    design=item.design,
                    mockups=mockups,
                    listing_copy=listing_copy,
                    product_type=item.product_type,
                ))
        except Exception as exc:
            self._emit("finalize", "failed", f"Finalization failed: {exc}")
            raise

        self._emit("finalize", "completed", f"{len(results)} product(s) finalized")
        return results

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    def publish(self, product: FinalizedProduct, credential: str) -> str:
        """Create a Printify product for ``product``; attaches and returns its id."""
        try:
            self._emit("publish", "started", "Connecting to Printify…")
            client = self.commerce_factory(credential)
            shops = self.executor.call(client.list_shops, label="printify shops")
            if not shops:
                raise PublishError("No Printify shops found for this account.")
            shop = shops[0]

            self._emit("publish", "started", "Uploading design to Printify Media Library…")
            file_name = upload_file_name(product.concept.title)
            image_id = self.executor.call(
                lambda: client.upload_image(product.design.image.data, file_name),
                label="printify upload",
            )

            self._emit("publish", "started", f"Creating {product.product_type} listing…")
            copy = product.listing_copy
            created = self.executor.call(
                lambda: client.create_product(
                    shop["id"], product.product_type, image_id,
                    copy.title, copy.description, list(copy.tags),
                ),
                label="printify product",
            )
            if not created.get("id"):
                raise PublishError("Printify did not return a product id.")
            publish_id = str(created["id"])
        except Exception as exc:
            self._emit("publish", "failed", f"Publishing failed: {exc}")
            raise

        product.attach_publish_id(publish_id)
        self._emit(
            "publish",
            "completed",
            f'Successfully created "{created.get("title", copy.title)}" in Printify!',
            {"product_id": product.id, "publish_id": publish_id},
        )
        return publish_id
