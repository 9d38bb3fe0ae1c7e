"""Shared fakes for the provider contracts and the Printify client."""

import pytest

from forge_core import ForgePipeline
from providers import RenderedImage
from remote_call import RemoteCallExecutor


class ApiError(Exception):
    """Provider-style error carrying an HTTP status code."""

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


class FakeTextGenerator:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def generate_structured(self, prompt, system_instruction, schema, model=None):
        self.calls.append({
            "prompt": prompt,
            "system_instruction": system_instruction,
            "schema": schema,
            "model": model,
        })
        result = self.responses.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


class FakeImageGenerator:
    """Returns queued results in order; once the queue is empty, a fresh PNG."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def generate_image(self, parts, model=None):
        self.calls.append(list(parts))
        if self.responses:
            result = self.responses.pop(0)
        else:
            result = RenderedImage(data=f"img-{len(self.calls)}".encode(), mime_type="image/png")
        if isinstance(result, BaseException):
            raise result
        return result


class FakeCommerce:
    def __init__(self, token, shops=None, product_id="prod-1"):
        self.token = token
        self.shops = [{"id": "shop-1", "title": "Forge Shop"}] if shops is None else shops
        self.product_id = product_id
        self.calls = []

    def list_shops(self):
        self.calls.append(("list_shops",))
        return self.shops

    def upload_image(self, data, file_name):
        self.calls.append(("upload_image", data, file_name))
        return "img-123"

    def create_product(self, shop_id, product_type, image_id, title, description, tags):
        self.calls.append(("create_product", shop_id, product_type, image_id, title, description, tags))
        return {"id": self.product_id, "title": title}


class SleepRecorder:
    def __init__(self):
        self.delays = []

    def __call__(self, seconds):
        self.delays.append(seconds)


def concept_payload(n=3):
    return [
        {
            "conceptTitle": f"Concept {i}",
            "displayText": f"Oh So Merry {i}",
            "fusion": ["minimal", "cozy"],
            "vision": f"Vision {i}.",
            "whyItWorks": f"Because {i}.",
        }
        for i in range(1, n + 1)
    ]


def listing_payload(tags=13):
    return {
        "title": "Minimalist Christmas Mug, Oh So Merry Coffee Cup, Holiday Gift",
        "description": "A cozy mug for the holidays.",
        "variations": ["11oz White", "15oz White"],
        "tags": [f"tag {i}" for i in range(1, tags + 1)],
    }


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def make_pipeline(sleeper):
    """Build a pipeline over fakes. Returns (pipeline, text, image, events)."""

    def _make(text_responses=(), image_responses=(), commerce_factory=FakeCommerce, settings=None):
        text = FakeTextGenerator(text_responses)
        image = FakeImageGenerator(image_responses)
        events = []
        pipeline = ForgePipeline(
            text_generator=text,
            image_generator=image,
            settings=settings or {},
            progress_cb=events.append,
            executor=RemoteCallExecutor(sleep=sleeper),
            commerce_factory=commerce_factory,
            sleep=sleeper,
        )
        return pipeline, text, image, events

    return _make
