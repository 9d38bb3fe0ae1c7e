"""Finalization, publishing and a full Christmas mug run over fakes."""

import pytest

from conftest import ApiError, FakeCommerce, concept_payload, listing_payload
from forge_core import Concept, DesignAsset, FinalizationItem, FinalizedProduct, ListingCopy
from printify import PublishError
from providers import RenderedImage
from remote_call import ServiceBusyError


def _items(n=2, product_type="Mug"):
    items = []
    for i in range(n):
        concept = Concept(f"Concept {i}", f"Text {i}", ("minimal", "cozy"), "Vision.", "Why.")
        design = DesignAsset(concept, "Minimalist Vector", RenderedImage(f"design-{i}".encode()))
        items.append(FinalizationItem(design=design, product_type=product_type))
    return items


def _recording_factory(**kwargs):
    made = []

    def factory(token):
        client = FakeCommerce(token, **kwargs)
        made.append(client)
        return client

    return factory, made


# ---------------------------------------------------------------------------
# finalize_assets
# ---------------------------------------------------------------------------

def test_finalize_reports_every_step_in_order(make_pipeline):
    pipeline, text, image, events = make_pipeline(text_responses=[listing_payload(), listing_payload()])
    progress = []

    products = pipeline.finalize_assets(_items(), "Christmas", on_progress=lambda c, t: progress.append((c, t)))

    assert progress == [(n, 26) for n in range(27)]
    assert len(products) == 2
    assert [p.concept.title for p in products] == ["Concept 0", "Concept 1"]
    assert all(len(p.mockups) == 12 for p in products)
    assert all(p.publish_id is None for p in products)
    assert len(text.calls) == 2
    assert len(image.calls) == 24

    progress_events = [e for e in events if e["status"] == "progress"]
    assert progress_events[-1]["data"] == {"current": 26, "total": 26}
    assert "Generated mockup 12/12" in progress_events[-1]["message"]
    assert events[-1]["status"] == "completed"


def test_finalize_keeps_per_item_product_type(make_pipeline):
    pipeline, _, image, _ = make_pipeline(text_responses=[listing_payload(), listing_payload()])
    items = _items()
    items[1] = FinalizationItem(design=items[1].design, product_type="Hoodie")

    products = pipeline.finalize_assets(items, "Christmas")

    assert [p.product_type for p in products] == ["Mug", "Hoodie"]
    assert "Mug" in image.calls[0][1]
    assert "Hoodie" in image.calls[12][1]


def test_finalize_with_no_items(make_pipeline):
    pipeline, _, _, _ = make_pipeline()
    progress = []
    assert pipeline.finalize_assets([], "Christmas", on_progress=lambda c, t: progress.append((c, t))) == []
    assert progress == [(0, 0)]


def test_finalize_failure_discards_the_whole_batch(make_pipeline):
    pipeline, _, image, events = make_pipeline(
        text_responses=[listing_payload(), ApiError("API key not valid", 400)]
    )

    with pytest.raises(ApiError):
        pipeline.finalize_assets(_items(), "Christmas")

    assert len(image.calls) == 12
    assert events[-1]["status"] == "failed"
    assert not [e for e in events if e["status"] == "completed"]


def test_finalize_failure_when_a_design_yields_no_mockups(make_pipeline):
    pipeline, _, _, _ = make_pipeline(text_responses=[listing_payload()], image_responses=[None] * 12)
    with pytest.raises(Exception, match="No mockups were generated."):
        pipeline.finalize_assets(_items(n=1), "Christmas")


# ---------------------------------------------------------------------------
# publish
# ---------------------------------------------------------------------------

def _product(title="Oh So Merry Mug", product_type="Mug"):
    concept = Concept(title, "Oh So Merry", ("minimal",), "Vision.", "Why.")
    design = DesignAsset(concept, "Minimalist Vector", RenderedImage(b"design-bytes"))
    copy = ListingCopy.from_dict(listing_payload())
    return FinalizedProduct(concept, design, [RenderedImage(b"m1")], copy, product_type)


def test_publish_uploads_then_creates_in_first_shop(make_pipeline):
    factory, made = _recording_factory(
        shops=[{"id": "111", "title": "Main"}, {"id": "222", "title": "Other"}], product_id="p-9"
    )
    pipeline, _, _, events = make_pipeline(commerce_factory=factory)
    product = _product()

    publish_id = pipeline.publish(product, "secret-token")

    assert publish_id == "p-9"
    assert product.publish_id == "p-9"
    (client,) = made
    assert client.token == "secret-token"
    assert [c[0] for c in client.calls] == ["list_shops", "upload_image", "create_product"]
    assert client.calls[1] == ("upload_image", b"design-bytes", "Oh_So_Merry_Mug.png")
    _, shop_id, product_type, image_id, title, description, tags = client.calls[2]
    assert (shop_id, product_type, image_id) == ("111", "Mug", "img-123")
    assert title == product.listing_copy.title
    assert tags == list(product.listing_copy.tags)
    assert events[-1]["status"] == "completed"
    assert "in Printify!" in events[-1]["message"]


def test_publish_without_shops_fails_before_upload(make_pipeline):
    factory, made = _recording_factory(shops=[])
    pipeline, _, _, events = make_pipeline(commerce_factory=factory)
    product = _product()

    with pytest.raises(PublishError, match="No Printify shops found"):
        pipeline.publish(product, "token")

    assert made[0].calls == [("list_shops",)]
    assert product.publish_id is None
    assert events[-1]["status"] == "failed"


def test_publish_retries_transient_printify_errors(make_pipeline, sleeper):
    attempts = []

    class Flaky(FakeCommerce):
        def list_shops(self):
            attempts.append(1)
            if len(attempts) == 1:
                raise ApiError("Too Many Requests", 429)
            return super().list_shops()

    pipeline, _, _, _ = make_pipeline(commerce_factory=Flaky)
    assert pipeline.publish(_product(), "token") == "prod-1"
    assert sleeper.delays == [2.0]


def test_publish_busy_service_surfaces_generic_message(make_pipeline):
    class Down(FakeCommerce):
        def upload_image(self, data, file_name):
            raise ApiError("upstream 503", 503)

    pipeline, _, _, _ = make_pipeline(commerce_factory=Down)
    with pytest.raises(ServiceBusyError):
        pipeline.publish(_product(), "token")


def test_republishing_replaces_the_id(make_pipeline):
    factory, _ = _recording_factory(product_id="second")
    pipeline, _, _, _ = make_pipeline(commerce_factory=factory)
    product = _product()
    product.attach_publish_id("first")

    pipeline.publish(product, "token")

    assert product.publish_id == "second"


# ---------------------------------------------------------------------------
# Whole flow
# ---------------------------------------------------------------------------

def test_christmas_mug_end_to_end(make_pipeline, sleeper):
    factory, made = _recording_factory(product_id="printify-42")
    pipeline, text, image, events = make_pipeline(
        text_responses=[concept_payload(), listing_payload()],
        commerce_factory=factory,
        settings={"design_delay": 1.5, "mockup_delay": 1.5},
    )

    concepts = pipeline.ideate("Christmas", "Minimalist Vector", "Mug")
    assert len(concepts) == 3

    designs = pipeline.render_designs([concepts[0]], "Minimalist Vector")
    assert len(designs) == 1

    progress = []
    products = pipeline.finalize_assets(
        [FinalizationItem(designs[0], "Mug")], "Christmas", on_progress=lambda c, t: progress.append(c),
    )
    assert progress == list(range(14))
    assert len(products) == 1
    product = products[0]
    assert len(product.mockups) == 12
    assert len(product.listing_copy.tags) == 13

    assert pipeline.publish(product, "token") == "printify-42"
    assert product.publish_id == "printify-42"
    assert made[0].calls[2][2] == "Mug"

    # one design render, then twelve mockups with eleven pauses between them
    assert len(image.calls) == 13
    assert sleeper.delays == [1.5] * 11
    assert {e["stage"] for e in events} == {"ideation", "design", "finalize", "publish"}


def test_publish_without_product_id_reports_failure(make_pipeline):
    class NoId(FakeCommerce):
        def create_product(self, shop_id, product_type, image_id, title, description, tags):
            return {"title": title}

    pipeline, _, _, events = make_pipeline(commerce_factory=NoId)
    product = _product()

    with pytest.raises(PublishError, match="did not return a product id"):
        pipeline.publish(product, "token")

    assert product.publish_id is None
    assert events[-1]["stage"] == "publish"
    assert events[-1]["status"] == "failed"
