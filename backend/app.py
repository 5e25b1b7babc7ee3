import os
import uuid
import logging
from flask import Flask, request, jsonify, session, flash, get_flashed_messages, Response
from flask_cors import CORS
from pydantic import ValidationError
from werkzeug.exceptions import RequestEntityTooLarge
from dotenv import load_dotenv

from errors import IngredientValidationError
from models import SessionRegistry
from schemas.dto import IngredientIn, RecognizeRequest, FormatRequest, RecipeOut
from services.gateway import get_gateway
from services.uploads import ImageIngestion, pick_upload
from services.workflow import WorkflowController
from services.formatter import format_recipe, render_html

load_dotenv()

app = Flask(__name__)
# the session cookie is only shared with origins listed in CORS_ORIGINS
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]
if CORS_ORIGINS:
    CORS(app, resources={r"/api/*": {"origins": CORS_ORIGINS}}, supports_credentials=True)
else:
    CORS(app, resources={r"/api/*": {"origins": "*"}})

app.secret_key = os.getenv("SECRET_KEY", "kitchenai-dev-key")
app.config["MAX_CONTENT_LENGTH"] = int(os.getenv("MAX_UPLOAD_MB", "10")) * 1024 * 1024
app.config["GATEWAY"] = get_gateway()

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")

registry = SessionRegistry(max_sessions=int(os.getenv("MAX_SESSIONS", "1000")))

def ok(payload: dict, status=200): return jsonify(payload), status
def err(code="BAD_REQUEST", message="bad request", status=400): return jsonify({"error": {"code": code, "message": message}}), status

def _notify(message: str, category: str):
    flash(message, category)

def current_workflow() -> WorkflowController:
    """The calling browser's controller; a new session starts empty."""
    sid = session.get("sid")
    if not sid:
        sid = session["sid"] = uuid.uuid4().hex
    return registry.get_or_create(sid, lambda: WorkflowController(app.config["GATEWAY"], notify=_notify))

def state_payload(wf: WorkflowController, **extra) -> dict:
    payload = {"state": wf.snapshot().model_dump(mode="json")}
    payload.update(extra)
    payload["notifications"] = [list(m) for m in get_flashed_messages(with_categories=True)]
    return payload

@app.errorhandler(RequestEntityTooLarge)
def too_large(_e):
    return err("TOO_LARGE", "image too large", 413)

# --- Routes ---

@app.get("/health")
def health(): return ok({"status": "ok", "provider": app.config["GATEWAY"].name})

@app.get("/api/session")
def get_session():
    return ok(state_payload(current_workflow()))

@app.post("/api/session/reset")
def reset_session():
    sid = session.pop("sid", None)
    if sid:
        registry.discard(sid)
    return ok(state_payload(current_workflow()))

@app.post("/api/ingredients/recognize")
def recognize():
    wf = current_workflow()
    if request.is_json:
        try:
            payload = RecognizeRequest.model_validate(request.get_json(silent=True) or {})
        except ValidationError as e:
            return err(message=e.errors()[0]["msg"])
        app.logger.info("Procesando imagen (data URI)")
        accepted = wf.upload_image(payload.image)
        return ok(state_payload(wf, accepted=accepted))

    upload = pick_upload(request.files)
    if upload is None:
        return err("NO_IMAGE", "no image provided")
    app.logger.info("Procesando imagen (%s)", upload.filename)
    results = []
    ImageIngestion().ingest(upload, lambda encoded: results.append(wf.upload_image(encoded)))
    if not results:
        return err("NO_IMAGE", "empty image")
    return ok(state_payload(wf, accepted=results[0]))

@app.get("/api/ingredients")
def list_ingredients():
    wf = current_workflow()
    return ok({"ingredients": [i.model_dump() for i in wf.ingredients]})

@app.post("/api/ingredients")
def add_ingredient():
    wf = current_workflow()
    try:
        payload = IngredientIn.model_validate(request.get_json(force=True, silent=True) or {})
    except ValidationError as e:
        return err(message=e.errors()[0]["msg"])
    added = wf.add_ingredient(payload.to_ingredient())
    return ok(state_payload(wf, added=added))

@app.put("/api/ingredients/<int:index>")
def update_ingredient(index: int):
    wf = current_workflow()
    try:
        payload = IngredientIn.model_validate(request.get_json(force=True, silent=True) or {})
        wf.update_ingredient(index, payload.to_ingredient())
    except ValidationError as e:
        return err(message=e.errors()[0]["msg"])
    except IngredientValidationError as e:
        return err(message=str(e))
    except IndexError as e:
        return err("NOT_FOUND", str(e), 404)
    return ok(state_payload(wf))

@app.delete("/api/ingredients/<int:index>")
def remove_ingredient(index: int):
    wf = current_workflow()
    try:
        removed = wf.remove_ingredient(index)
    except IndexError as e:
        return err("NOT_FOUND", str(e), 404)
    return ok(state_payload(wf, removed=removed.model_dump()))

@app.post("/api/recipes/generate")
def generate():
    wf = current_workflow()
    app.logger.info("Generando receta")
    accepted = wf.generate_recipe()
    return ok(state_payload(wf, accepted=accepted), 200 if accepted else 202)

@app.get("/api/recipes/current")
def current_recipe():
    wf = current_workflow()
    blocks = wf.recipe_tree()
    if request.args.get("format") == "html":
        return Response(str(render_html(blocks)), mimetype="text/html")
    return ok(RecipeOut(recipe=wf.state.recipe, blocks=blocks).model_dump(mode="json"))

@app.post("/api/recipes/format")
def format_text():
    try:
        payload = FormatRequest.model_validate(request.get_json(force=True, silent=True) or {})
    except ValidationError as e:
        return err(message=e.errors()[0]["msg"])
    blocks = format_recipe(payload.text)
    if request.args.get("format") == "html":
        return Response(str(render_html(blocks)), mimetype="text/html")
    return ok(RecipeOut(recipe=payload.text, blocks=blocks).model_dump(mode="json"))


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", 5001)), debug=True)
