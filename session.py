"""In-memory session state for one browser session.

A session owns everything a user produced so far (concepts, designs,
selections, finalized products), indexed by generated ids. Only one flow
may run per session at a time; acquire_flow() enforces that.
"""

from __future__ import annotations

import threading
import uuid
from typing import Dict, List, Optional, Tuple

from catalog import DEFAULT_PRODUCT_TYPE, DEFAULT_STYLE, DEFAULT_THEME
from forge_core import Concept, DesignAsset, FinalizationItem, FinalizedProduct
from remote_call import ForgeError


class SessionBusyError(ForgeError):
    def __init__(self, running: str) -> None:
        super().__init__(f"A {running} flow is already running for this session.")
        self.running = running


class ForgeSession:
    def __init__(
        self,
        session_id: str,
        theme: str = DEFAULT_THEME,
        style: str = DEFAULT_STYLE,
        product_type: str = DEFAULT_PRODUCT_TYPE,
        settings: Optional[Dict] = None,
    ) -> None:
        self.id = session_id
        self.theme = theme
        self.style = style
        self.product_type = product_type
        self.settings: Dict = settings or {}
        self.printify_token = ""

        self.step = "CONFIG"
        self.concepts: Dict[str, Concept] = {}
        self.selected_concept_ids: List[str] = []
        self.designs: Dict[str, DesignAsset] = {}
        # design id -> product type override, in selection order
        self.design_selections: Dict[str, str] = {}
        self.products: Dict[str, FinalizedProduct] = {}

        self.running: Optional[str] = None
        self.worker: Optional[threading.Thread] = None
        self._flow_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Flow serialisation
    # ------------------------------------------------------------------

    def acquire_flow(self, name: str) -> None:
        if not self._flow_lock.acquire(blocking=False):
            raise SessionBusyError(self.running or "pipeline")
        self.running = name

    def release_flow(self) -> None:
        self.running = None
        self._flow_lock.release()

    @property
    def busy(self) -> bool:
        return self._flow_lock.locked()

    # ------------------------------------------------------------------
    # Concepts
    # ------------------------------------------------------------------

    def store_concepts(self, concepts: List[Concept]) -> None:
        self.concepts = {c.id: c for c in concepts}
        self.selected_concept_ids = []
        self.step = "IDEATION"

    def toggle_concept(self, concept_id: str) -> bool:
        """Flip selection of a concept; returns the new selected state."""
        if concept_id not in self.concepts:
            raise KeyError(concept_id)
        if concept_id in self.selected_concept_ids:
            self.selected_concept_ids.remove(concept_id)
            return False
        self.selected_concept_ids.append(concept_id)
        return True

    def selected_concepts(self) -> List[Concept]:
        return [self.concepts[cid] for cid in self.selected_concept_ids]

    # ------------------------------------------------------------------
    # Designs
    # ------------------------------------------------------------------

    def start_design_batch(self) -> None:
        self.designs = {}
        self.design_selections = {}

    def store_designs(self, designs: List[DesignAsset]) -> None:
        self.designs = {d.id: d for d in designs}
        self.design_selections = {}
        self.step = "DESIGN"

    def toggle_design(self, design_id: str, product_type: Optional[str] = None) -> bool:
        if design_id not in self.designs:
            raise KeyError(design_id)
        if design_id in self.design_selections:
            del self.design_selections[design_id]
            return False
        self.design_selections[design_id] = product_type or self.product_type
        return True

    def set_design_product_type(self, design_id: str, product_type: str) -> None:
        if design_id not in self.design_selections:
            raise KeyError(design_id)
        self.design_selections[design_id] = product_type

    def finalization_items(
        self, selections: Optional[List[Tuple[str, Optional[str]]]] = None,
    ) -> List[FinalizationItem]:
        """Items for the selected designs, or for explicit (design id, product type) pairs.

        A pair without a product type falls back to the design's selection override,
        then to the session's product type. Unknown design ids raise KeyError.
        """
        if selections is None:
            pairs = list(self.design_selections.items())
        else:
            pairs = [
                (did, pt or self.design_selections.get(did, self.product_type))
                for did, pt in selections
            ]
        return [FinalizationItem(design=self.designs[did], product_type=pt) for did, pt in pairs]

    # ------------------------------------------------------------------
    # Finalized products
    # ------------------------------------------------------------------

    def start_finalize_batch(self) -> None:
        self.products = {}

    def store_products(self, products: List[FinalizedProduct]) -> None:
        self.products = {p.id: p for p in products}
        self.step = "FINALIZE"

    def product(self, product_id: str) -> FinalizedProduct:
        return self.products[product_id]

    # ------------------------------------------------------------------

    def reset(self) -> None:
        self.step = "CONFIG"
        self.concepts = {}
        self.selected_concept_ids = []
        self.designs = {}
        self.design_selections = {}
        self.products = {}

    def snapshot(self) -> Dict:
        return {
            "id": self.id,
            "step": self.step,
            "theme": self.theme,
            "style": self.style,
            "product_type": self.product_type,
            "has_printify_token": bool(self.printify_token),
            "running": self.running,
            "concepts": [c.to_dict() for c in self.concepts.values()],
            "selected_concept_ids": list(self.selected_concept_ids),
            "designs": [
                {"id": d.id, "concept_id": d.concept.id, "style": d.style, "mime_type": d.image.mime_type}
                for d in self.designs.values()
            ],
            "design_selections": [
                {"design_id": did, "product_type": pt} for did, pt in self.design_selections.items()
            ],
            "products": [p.to_dict() for p in self.products.values()],
        }


class SessionStore:
    """Process-local registry of sessions keyed by id."""

    def __init__(self) -> None:
        self._sessions: Dict[str, ForgeSession] = {}
        self._lock = threading.Lock()

    def create(self, **config) -> ForgeSession:
        session = ForgeSession(uuid.uuid4().hex[:8], **config)
        with self._lock:
            self._sessions[session.id] = session
        return session

    def get(self, session_id: str) -> ForgeSession:
        with self._lock:
            return self._sessions[session_id]

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)
