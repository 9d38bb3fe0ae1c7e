"""Session state and flow serialisation."""

import pytest

from forge_core import Concept, DesignAsset, FinalizedProduct, ListingCopy
from providers import RenderedImage
from session import ForgeSession, SessionBusyError, SessionStore


def _concepts(n=3):
    return [Concept(f"C{i}", f"T{i}", ("a", "b"), "v", "w") for i in range(n)]


def _designs(concepts):
    return [DesignAsset(c, "Art Deco", RenderedImage(c.title.encode())) for c in concepts]


@pytest.fixture
def session():
    return ForgeSession("s1", theme="Christmas", style="Art Deco", product_type="Mug")


def test_new_session_starts_in_config(session):
    snap = session.snapshot()
    assert snap["step"] == "CONFIG"
    assert snap["concepts"] == [] and snap["products"] == []
    assert snap["has_printify_token"] is False
    assert snap["running"] is None


def test_concept_selection_toggles(session):
    concepts = _concepts()
    session.store_concepts(concepts)
    assert session.step == "IDEATION"

    assert session.toggle_concept(concepts[2].id) is True
    assert session.toggle_concept(concepts[0].id) is True
    assert session.selected_concepts() == [concepts[2], concepts[0]]
    assert session.toggle_concept(concepts[2].id) is False
    assert session.selected_concepts() == [concepts[0]]


def test_toggle_unknown_concept(session):
    session.store_concepts(_concepts())
    with pytest.raises(KeyError):
        session.toggle_concept("missing")


def test_new_concepts_clear_selection(session):
    first = _concepts()
    session.store_concepts(first)
    session.toggle_concept(first[0].id)
    session.store_concepts(_concepts(2))
    assert session.selected_concept_ids == []
    assert len(session.concepts) == 2


def test_design_selection_uses_session_product_type_by_default(session):
    designs = _designs(_concepts(2))
    session.store_designs(designs)
    assert session.step == "DESIGN"

    session.toggle_design(designs[0].id)
    session.toggle_design(designs[1].id, "Hoodie")
    items = session.finalization_items()

    assert [(i.design, i.product_type) for i in items] == [(designs[0], "Mug"), (designs[1], "Hoodie")]


def test_product_type_override_requires_selection(session):
    designs = _designs(_concepts(1))
    session.store_designs(designs)
    with pytest.raises(KeyError):
        session.set_design_product_type(designs[0].id, "Pillow")

    session.toggle_design(designs[0].id)
    session.set_design_product_type(designs[0].id, "Pillow")
    assert session.finalization_items()[0].product_type == "Pillow"


def test_finalization_items_for_explicit_selections(session):
    designs = _designs(_concepts(3))
    session.store_designs(designs)
    session.toggle_design(designs[1].id, "Ornament")

    items = session.finalization_items([
        (designs[0].id, None),
        (designs[1].id, None),
        (designs[2].id, "Tote Bag"),
    ])

    assert [i.design for i in items] == designs
    assert [i.product_type for i in items] == ["Mug", "Ornament", "Tote Bag"]


def test_finalization_items_unknown_design(session):
    session.store_designs(_designs(_concepts(1)))
    with pytest.raises(KeyError):
        session.finalization_items([("missing", None)])


def test_design_batch_clears_previous_designs(session):
    session.store_designs(_designs(_concepts(2)))
    session.toggle_design(next(iter(session.designs)))
    session.start_design_batch()
    assert session.designs == {} and session.design_selections == {}


def test_products_and_reset(session):
    concept = _concepts(1)[0]
    design = _designs([concept])[0]
    copy = ListingCopy("t", "d", ("v",), ("tag",))
    product = FinalizedProduct(concept, design, [RenderedImage(b"m")], copy, "Mug")
    session.store_products([product])

    assert session.step == "FINALIZE"
    assert session.product(product.id) is product
    assert session.snapshot()["products"][0]["mockup_count"] == 1

    session.reset()
    assert session.step == "CONFIG"
    assert session.products == {} and session.concepts == {}
    with pytest.raises(KeyError):
        session.product(product.id)


def test_only_one_flow_at_a_time(session):
    session.acquire_flow("design")
    assert session.busy
    assert session.snapshot()["running"] == "design"

    with pytest.raises(SessionBusyError) as info:
        session.acquire_flow("finalize")
    assert info.value.running == "design"

    session.release_flow()
    assert not session.busy
    session.acquire_flow("finalize")
    assert session.running == "finalize"


def test_store_create_get_discard():
    store = SessionStore()
    created = store.create(theme="Halloween")
    assert store.get(created.id) is created
    assert created.theme == "Halloween"
    assert created.style == "Minimalist Vector"

    store.discard(created.id)
    with pytest.raises(KeyError):
        store.get(created.id)
