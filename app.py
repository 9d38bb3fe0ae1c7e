"""Alchemist Forge: Flask web application."""

from __future__ import annotations

import io
import json
import logging
import os
import queue
import threading
import traceback
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

from dotenv import load_dotenv
from flask import Flask, Response, jsonify, request, send_file
from flask_cors import CORS

load_dotenv()

import log_setup
log_setup.configure(os.environ.get("LOG_LEVEL", "INFO"))

import catalog
import forge_core
import launch_pack
import providers
import settings as forge_settings
from remote_call import ForgeError
from session import ForgeSession, SessionBusyError, SessionStore

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = Flask(__name__)
CORS(app)

sessions = SessionStore()

# Active SSE queues: session_id -> Queue
_session_queues: Dict[str, queue.Queue] = {}
_session_queues_lock = threading.Lock()


# ---------------------------------------------------------------------------
# SSE helpers
# ---------------------------------------------------------------------------

def _sse_event(data: dict) -> str:
    return f"data: {json.dumps(data)}\n\n"


def _get_or_create_queue(session_id: str) -> queue.Queue:
    with _session_queues_lock:
        if session_id not in _session_queues:
            _session_queues[session_id] = queue.Queue(maxsize=500)
        return _session_queues[session_id]


def _cleanup_queue(session_id: str) -> None:
    with _session_queues_lock:
        _session_queues.pop(session_id, None)


def _drain_queue(session_id: str) -> None:
    """Drop unread events left by earlier flows; attached streams keep the same queue."""
    q = _get_or_create_queue(session_id)
    dropped = 0
    while True:
        try:
            q.get_nowait()
        except queue.Empty:
            break
        dropped += 1
    if dropped:
        log.debug("Dropped %d stale event(s) for session %s", dropped, session_id)


def _queue_cb(session_id: str) -> Callable[[Dict], None]:
    q = _get_or_create_queue(session_id)

    def progress_cb(event: Dict) -> None:
        try:
            q.put_nowait(event)
        except queue.Full:
            pass

    return progress_cb


# ---------------------------------------------------------------------------
# Flow runner
# ---------------------------------------------------------------------------

def _make_pipeline(session: ForgeSession, progress_cb: Callable[[Dict], None]) -> forge_core.ForgePipeline:
    resolved = forge_settings.resolve(session.settings)
    return forge_core.ForgePipeline(
        text_generator=providers.make_text_generator(resolved),
        image_generator=providers.make_image_generator(resolved),
        settings=resolved,
        progress_cb=progress_cb,
    )


def _flow_thread(
    session: ForgeSession,
    flow: str,
    work: Callable[[forge_core.ForgePipeline], Optional[Dict]],
) -> None:
    progress_cb = _queue_cb(session.id)
    progress_cb({"stage": "flow", "status": "started", "message": f"{flow} started…", "flow": flow})
    log.info("Flow started: session=%s  flow=%s", session.id, flow)
    try:
        pipeline = _make_pipeline(session, progress_cb)
        data = work(pipeline) or {}
        log.info("Flow complete: session=%s  flow=%s", session.id, flow)
        progress_cb({
            "stage": "flow",
            "status": "complete",
            "message": "Done!",
            "flow": flow,
            "data": data,
        })
    except Exception as exc:
        err_msg = str(exc)
        log.error("Flow failed: session=%s  flow=%s  error=%s", session.id, flow, err_msg, exc_info=True)
        progress_cb({
            "stage": "flow",
            "status": "failed",
            "message": err_msg,
            "flow": flow,
            "data": {"traceback": traceback.format_exc()},
        })
    finally:
        session.release_flow()


def _start_flow(
    session: ForgeSession,
    flow: str,
    work: Callable[[forge_core.ForgePipeline], Optional[Dict]],
    prepare: Optional[Callable[[], None]] = None,
):
    try:
        session.acquire_flow(flow)
    except SessionBusyError as exc:
        return jsonify({"error": str(exc)}), 409

    if prepare:
        prepare()
    _drain_queue(session.id)
    t = threading.Thread(target=_flow_thread, args=(session, flow, work), daemon=True)
    session.worker = t
    t.start()
    return jsonify({"session_id": session.id, "flow": flow}), 202


def _lookup(session_id: str) -> Optional[ForgeSession]:
    try:
        return sessions.get(session_id)
    except KeyError:
        return None


def _not_found(what: str = "Session"):
    return jsonify({"error": f"{what} not found"}), 404


# ---------------------------------------------------------------------------
# Routes: options
# ---------------------------------------------------------------------------

@app.get("/api/options")
def api_options():
    return jsonify({
        "styles": catalog.DESIGN_STYLES,
        "product_types": catalog.PRODUCT_TYPES,
        "defaults": {
            "theme": catalog.DEFAULT_THEME,
            "style": catalog.DEFAULT_STYLE,
            "product_type": catalog.DEFAULT_PRODUCT_TYPE,
        },
        "providers": providers.available_providers(),
        "text_providers": list(forge_settings.TEXT_PROVIDERS),
        "image_providers": list(forge_settings.IMAGE_PROVIDERS),
    })


# ---------------------------------------------------------------------------
# Routes: session management
# ---------------------------------------------------------------------------

def _validate_config(body: Dict) -> Optional[str]:
    style = body.get("style")
    product_type = body.get("product_type")
    if style is not None and style not in catalog.DESIGN_STYLES:
        return f"style must be one of: {catalog.DESIGN_STYLES}"
    if product_type is not None and product_type not in catalog.PRODUCT_TYPES:
        return f"product_type must be one of: {catalog.PRODUCT_TYPES}"
    if "theme" in body and not (body.get("theme") or "").strip():
        return "theme must not be empty"
    if "settings" in body:
        try:
            forge_settings.resolve(body.get("settings") or {})
        except ValueError as exc:
            return str(exc)
    return None


@app.post("/api/sessions")
def api_create_session():
    body = request.get_json(silent=True) or {}
    error = _validate_config(body)
    if error:
        return jsonify({"error": error}), 400

    session = sessions.create(
        theme=(body.get("theme") or catalog.DEFAULT_THEME).strip(),
        style=body.get("style") or catalog.DEFAULT_STYLE,
        product_type=body.get("product_type") or catalog.DEFAULT_PRODUCT_TYPE,
        settings=body.get("settings") or {},
    )
    log.info("Session created: id=%s  theme=%r  style=%s  product=%s",
             session.id, session.theme, session.style, session.product_type)
    return jsonify({"session_id": session.id}), 201


@app.get("/api/sessions/<session_id>")
def api_get_session(session_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()
    return jsonify(session.snapshot())


@app.put("/api/sessions/<session_id>/config")
def api_update_config(session_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()
    body = request.get_json(silent=True) or {}
    error = _validate_config(body)
    if error:
        return jsonify({"error": error}), 400

    if body.get("theme"):
        session.theme = body["theme"].strip()
    if body.get("style"):
        session.style = body["style"]
    if body.get("product_type"):
        session.product_type = body["product_type"]
    if "printify_token" in body:
        session.printify_token = (body.get("printify_token") or "").strip()
    if "settings" in body:
        session.settings = body.get("settings") or {}
    return jsonify(session.snapshot())


@app.delete("/api/sessions/<session_id>")
def api_delete_session(session_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()
    if session.busy:
        return jsonify({"error": "Cannot delete a session while a flow is running"}), 409
    sessions.discard(session_id)
    _cleanup_queue(session_id)
    log.info("Session deleted: id=%s", session_id)
    return "", 204


@app.post("/api/sessions/<session_id>/reset")
def api_reset(session_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()
    if session.busy:
        return jsonify({"error": "Cannot reset while a flow is running"}), 409
    session.reset()
    return jsonify(session.snapshot())


# ---------------------------------------------------------------------------
# Routes: selections
# ---------------------------------------------------------------------------

@app.post("/api/sessions/<session_id>/concepts/<concept_id>/toggle")
def api_toggle_concept(session_id: str, concept_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()
    try:
        selected = session.toggle_concept(concept_id)
    except KeyError:
        return _not_found("Concept")
    return jsonify({"concept_id": concept_id, "selected": selected})


@app.post("/api/sessions/<session_id>/designs/<design_id>/toggle")
def api_toggle_design(session_id: str, design_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()
    body = request.get_json(silent=True) or {}
    product_type = body.get("product_type")
    if product_type is not None and product_type not in catalog.PRODUCT_TYPES:
        return jsonify({"error": f"product_type must be one of: {catalog.PRODUCT_TYPES}"}), 400
    try:
        selected = session.toggle_design(design_id, product_type)
    except KeyError:
        return _not_found("Design")
    return jsonify({"design_id": design_id, "selected": selected})


@app.put("/api/sessions/<session_id>/designs/<design_id>/product-type")
def api_design_product_type(session_id: str, design_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()
    product_type = (request.get_json(silent=True) or {}).get("product_type")
    if product_type not in catalog.PRODUCT_TYPES:
        return jsonify({"error": f"product_type must be one of: {catalog.PRODUCT_TYPES}"}), 400
    try:
        session.set_design_product_type(design_id, product_type)
    except KeyError:
        return jsonify({"error": "Design is not selected"}), 400
    return jsonify({"design_id": design_id, "product_type": product_type})


# ---------------------------------------------------------------------------
# Routes: pipeline flows
# ---------------------------------------------------------------------------

@app.post("/api/sessions/<session_id>/concepts")
def api_forge_concepts(session_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()
    theme, style, product_type = session.theme, session.style, session.product_type

    def work(pipeline: forge_core.ForgePipeline) -> Dict:
        concepts = pipeline.ideate(theme, style, product_type)
        session.store_concepts(concepts)
        return {"concepts": [c.to_dict() for c in concepts]}

    return _start_flow(session, "ideation", work)


@app.post("/api/sessions/<session_id>/designs")
def api_forge_designs(session_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()

    body = request.get_json(silent=True) or {}
    concept_ids: Optional[List[str]] = body.get("concept_ids")
    if concept_ids is None:
        concept_ids = list(session.selected_concept_ids)
    unknown = [cid for cid in concept_ids if cid not in session.concepts]
    if unknown:
        return jsonify({"error": f"Unknown concept id(s): {unknown}"}), 400
    if not concept_ids:
        return jsonify({"error": "Select at least one concept"}), 400

    concepts = [session.concepts[cid] for cid in concept_ids]
    style = session.style

    def work(pipeline: forge_core.ForgePipeline) -> Dict:
        designs = pipeline.render_designs(concepts, style)
        session.store_designs(designs)
        return {"designs": [{"id": d.id, "concept_id": d.concept.id} for d in designs]}

    return _start_flow(session, "design", work, prepare=session.start_design_batch)


@app.post("/api/sessions/<session_id>/finalize")
def api_finalize(session_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()

    body = request.get_json(silent=True) or {}
    pairs: Optional[List[Tuple[str, Optional[str]]]] = None
    if body.get("selections") is not None:
        pairs = []
        for sel in body["selections"]:
            design_id, product_type = sel.get("design_id"), sel.get("product_type")
            if design_id not in session.designs:
                return jsonify({"error": f"Unknown design id: {design_id}"}), 400
            if product_type is not None and product_type not in catalog.PRODUCT_TYPES:
                return jsonify({"error": f"product_type must be one of: {catalog.PRODUCT_TYPES}"}), 400
            pairs.append((design_id, product_type))

    items = session.finalization_items(pairs)
    if not items:
        return jsonify({"error": "Select at least one design"}), 400

    theme = session.theme

    def work(pipeline: forge_core.ForgePipeline) -> Dict:
        products = pipeline.finalize_assets(items, theme)
        session.store_products(products)
        return {"products": [p.to_dict() for p in products]}

    return _start_flow(session, "finalize", work, prepare=session.start_finalize_batch)


@app.post("/api/sessions/<session_id>/products/<product_id>/publish")
def api_publish(session_id: str, product_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()
    product = session.products.get(product_id)
    if product is None:
        return _not_found("Product")
    if product.publish_id:
        return jsonify({"error": "Product is already published", "publish_id": product.publish_id}), 409

    body = request.get_json(silent=True) or {}
    token = (body.get("printify_token") or session.printify_token or "").strip()
    if not token:
        return jsonify({"error": "A Printify API token is required. Add it in settings."}), 400

    def work(pipeline: forge_core.ForgePipeline) -> Dict:
        publish_id = pipeline.publish(product, token)
        return {"product_id": product.id, "publish_id": publish_id}

    return _start_flow(session, "publish", work)


@app.get("/api/sessions/<session_id>/stream")
def api_stream(session_id: str):
    """Server-Sent Events stream for a session's flows."""
    if not _lookup(session_id):
        return _not_found()
    q = _get_or_create_queue(session_id)

    def generate() -> Generator[str, None, None]:
        yield _sse_event({"type": "heartbeat", "session_id": session_id})
        try:
            while True:
                try:
                    event = q.get(timeout=25)
                except queue.Empty:
                    yield _sse_event({"type": "heartbeat"})
                    continue

                yield _sse_event(event)

                if event.get("stage") == "flow" and event.get("status") in ("complete", "failed"):
                    yield _sse_event({"type": "done"})
                    break
        finally:
            _cleanup_queue(session_id)

    return Response(
        generate(),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-transform",
            "X-Accel-Buffering": "no",
            "Connection": "keep-alive",
        },
    )


# ---------------------------------------------------------------------------
# Routes: assets
# ---------------------------------------------------------------------------

def _send_image(image: Any, name: str):
    return send_file(
        io.BytesIO(image.data),
        mimetype=image.mime_type,
        download_name=f"{name}.{image.extension}",
    )


@app.get("/api/sessions/<session_id>/designs/<design_id>/image")
def api_design_image(session_id: str, design_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()
    design = session.designs.get(design_id)
    if design is None:
        return _not_found("Design")
    return _send_image(design.image, f"design-{design_id}")


@app.get("/api/sessions/<session_id>/products/<product_id>/mockups/<int:index>")
def api_mockup_image(session_id: str, product_id: str, index: int):
    session = _lookup(session_id)
    if not session:
        return _not_found()
    product = session.products.get(product_id)
    if product is None or not 1 <= index <= len(product.mockups):
        return _not_found("Mockup")
    return _send_image(product.mockups[index - 1], f"mockup_{index}")


@app.get("/api/sessions/<session_id>/launch-pack")
def api_launch_pack(session_id: str):
    session = _lookup(session_id)
    if not session:
        return _not_found()

    product_id = request.args.get("product_id")
    if product_id:
        product = session.products.get(product_id)
        if product is None:
            return _not_found("Product")
        products = [product]
    else:
        products = list(session.products.values())

    try:
        name, data = launch_pack.build_launch_pack(products)
    except ForgeError as exc:
        return jsonify({"error": str(exc)}), 400
    return send_file(
        io.BytesIO(data),
        mimetype="application/zip",
        as_attachment=True,
        download_name=name,
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    print(f"\n  Alchemist Forge → http://localhost:{port}\n")
    app.run(host="0.0.0.0", port=port, debug=False, threaded=True)
