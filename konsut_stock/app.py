"""Flask application exposing the stock engine as a small JSON API."""
from __future__ import annotations

from dataclasses import replace
from functools import wraps
from typing import Any, Dict, Optional

from flask import (
    Flask,
    Response,
    abort,
    flash,
    g,
    get_flashed_messages,
    jsonify,
    request,
    session,
)

from .auth import ADMIN_ROLE, Permissions, UserDirectory
from .config import Settings, get_settings
from .csv_codec import CSV_MIMETYPE, decode_catalog, encode_catalog, export_filename
from .currency import from_primary, from_secondary
from .drafts import Draft, DraftAutosave
from .errors import ValidationError
from .inventory import InventoryStore
from .models import CATEGORIES, Category, StockItem, coerce_number, parse_category, tidy_number
from .storage import KeyValueStore, build_key_value_store

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def create_app(
    settings: Optional[Settings] = None,
    *,
    kv: Optional[KeyValueStore] = None,
) -> Flask:
    settings = settings or get_settings()
    app = Flask(__name__)
    app.config["SECRET_KEY"] = settings.secret_key
    app.config["APP_NAME"] = settings.app_name

    kv_store = kv if kv is not None else build_key_value_store(settings)
    store = InventoryStore(
        kv_store, default_currency_rate=settings.default_currency_rate
    ).initialize()
    drafts = DraftAutosave(kv_store)
    users = UserDirectory.from_settings(settings)
    app.extensions["konsut_stock"] = store

    def _current_user():
        return getattr(g, "current_user", None)

    def _json_error(message: str, status: int = 400, *, code: Optional[str] = None, **extra: Any) -> Any:
        payload: Dict[str, Any] = {"error": message}
        if code:
            payload["code"] = code
        payload.update(extra)
        return jsonify(payload), status

    def _confirmation_required(**extra: Any) -> Any:
        return _json_error(
            "Confirmation required", 409, code="confirmation_required", **extra
        )

    def _resolve_category(value: str) -> Category:
        try:
            return parse_category(value)
        except ValidationError:
            abort(404)

    def _item_payload(item: StockItem) -> Dict[str, Any]:
        payload = item.to_dict()
        payload["priceUSD"] = store.price_usd_for(item)
        payload["low_stock"] = item.is_low_stock
        payload["line_value"] = item.line_value
        return payload

    @app.before_request
    def load_current_user() -> None:
        g.current_user = None
        username = session.get("user")
        if username:
            try:
                g.current_user = users.get_user(username)
            except KeyError:
                session.pop("user", None)

    def login_required(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if _current_user() is None:
                return _json_error("Unauthorized", 401, code="unauthorized")
            return func(*args, **kwargs)

        return wrapper

    def role_required(*roles: str):
        def decorator(func):
            @wraps(func)
            def wrapper(*args, **kwargs):
                user = _current_user()
                if user is None:
                    return _json_error("Unauthorized", 401, code="unauthorized")
                if user.role not in roles:
                    return _json_error("Forbidden", 403, code="forbidden")
                return func(*args, **kwargs)

            return wrapper

        return decorator

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    @app.post("/login")
    def login() -> Any:
        payload = _get_payload(request)
        username = str(payload.get("username") or "").strip()
        password = str(payload.get("password") or "")
        user = users.authenticate(username, password)
        if user is None:
            return _json_error("Invalid username or password", 401, code="invalid_credentials")
        session["user"] = user.username
        return jsonify(user.to_public_dict())

    @app.post("/logout")
    @login_required
    def logout() -> Any:
        session.pop("user", None)
        return "", 204

    @app.get("/api/me")
    def me() -> Any:
        user = _current_user()
        if user is None:
            return jsonify({"user": None, "permissions": Permissions.for_role(None).to_dict()})
        return jsonify({"user": user.to_public_dict(), "permissions": user.permissions.to_dict()})

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------
    @app.get("/api/stock")
    @login_required
    def list_stock() -> Any:
        query = request.args.get("q", "")
        category_arg = request.args.get("category")
        categories = [_resolve_category(category_arg)] if category_arg else list(CATEGORIES)
        items = {
            category: [_item_payload(item) for item in store.search(category, query)]
            for category in categories
        }
        return jsonify(
            {
                "items": items,
                "total_value": store.total_value(),
                "currency_rate": store.currency_rate,
                "low_stock_count": len(store.low_stock_items()),
            }
        )

    @app.post("/api/stock/<string:category>")
    @login_required
    def add_item(category: str) -> Any:
        resolved = _resolve_category(category)
        payload = _get_payload(request)
        draft = _draft_from_payload(payload, Draft(active_category=resolved), store.currency_rate)
        try:
            result = store.add_or_merge(resolved, draft)
        except ValidationError as exc:
            flash(str(exc), "warning")
            return _json_error(str(exc), 400, code="validation_error")
        if result.merged:
            flash(f"Updated quantity of {result.item.name}", "success")
        else:
            flash(f"Added {result.item.name}", "success")
        drafts.reset(draft)
        status = 200 if result.merged else 201
        return jsonify({"outcome": result.outcome, "item": _item_payload(result.item)}), status

    @app.put("/api/stock/<string:category>/<string:item_id>")
    @login_required
    def update_item(category: str, item_id: str) -> Any:
        resolved = _resolve_category(category)
        existing = store.get(resolved, item_id)
        if existing is None:
            return jsonify({"updated": False, "item": None})
        payload = _get_payload(request)
        try:
            candidate = _apply_item_changes(existing, payload, store.currency_rate)
        except ValidationError as exc:
            flash(str(exc), "warning")
            return _json_error(str(exc), 400, code="validation_error")
        updated = store.update(candidate)
        if updated is None:
            return jsonify({"updated": False, "item": None})
        flash(f"Saved {updated.name}", "success")
        return jsonify({"updated": True, "item": _item_payload(updated)})

    @app.delete("/api/stock/<string:category>/<string:item_id>")
    @login_required
    def delete_item(category: str, item_id: str) -> Any:
        resolved = _resolve_category(category)
        if not _is_confirmed(request):
            return _confirmation_required()
        removed = store.remove(resolved, item_id)
        if removed:
            flash("Item deleted", "success")
        return jsonify({"removed": removed})

    @app.post("/api/stock/clear")
    @role_required(ADMIN_ROLE)
    def clear_stock() -> Any:
        if not _is_confirmed(request):
            return _confirmation_required()
        store.clear_all()
        flash("All stock data, rates and drafts cleared", "success")
        return jsonify({"cleared": True, "currency_rate": store.currency_rate})

    @app.post("/api/stock/sample")
    @role_required(ADMIN_ROLE)
    def load_sample() -> Any:
        store.load_sample()
        flash("Sample stock seeded", "success")
        return jsonify({"total_value": store.total_value()})

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------
    @app.get("/api/stock/export")
    @login_required
    def export_stock() -> Response:
        content = encode_catalog(store.catalog())
        response = Response(content, mimetype=CSV_MIMETYPE)
        response.headers["Content-Disposition"] = f"attachment; filename={export_filename()}"
        return response

    @app.post("/api/stock/import")
    @login_required
    def import_stock() -> Any:
        try:
            text = _extract_import_text(request)
        except ValueError as exc:
            return _json_error(str(exc), 400, code="invalid_upload")
        batch = decode_catalog(text, existing_ids=store.all_ids())
        if batch.is_empty:
            flash("No valid items found. Expected: Category,Name,Quantity,PriceKsh,PriceUSD,Description", "warning")
            return _json_error("No valid items found", 422, code="empty_import", count=0)
        if not _is_confirmed(request):
            return _confirmation_required(count=batch.count, skipped=batch.skipped)
        imported = store.import_items(batch)
        flash(f"Imported {imported} items", "success")
        return jsonify({"count": imported, "skipped": batch.skipped})

    # ------------------------------------------------------------------
    # Currency
    # ------------------------------------------------------------------
    @app.get("/api/currency-rate")
    @login_required
    def get_currency_rate() -> Any:
        return jsonify({"rate": store.currency_rate})

    @app.put("/api/currency-rate")
    @login_required
    def set_currency_rate() -> Any:
        payload = _get_payload(request)
        try:
            rate = store.set_currency_rate(payload.get("rate"))
        except ValidationError as exc:
            flash(str(exc), "warning")
            return _json_error(str(exc), 400, code="validation_error")
        return jsonify({"rate": rate})

    @app.post("/api/currency/convert")
    @login_required
    def convert_price() -> Any:
        payload = _get_payload(request)
        rate = store.currency_rate
        if payload.get("price_usd") not in (None, ""):
            usd = coerce_number(payload.get("price_usd"), 0) or 0
            return jsonify({"price_usd": usd, "price_ksh": tidy_number(from_secondary(usd, rate))})
        ksh = coerce_number(payload.get("price_ksh"), 0) or 0
        return jsonify({"price_ksh": ksh, "price_usd": tidy_number(from_primary(ksh, rate))})

    # ------------------------------------------------------------------
    # Draft
    # ------------------------------------------------------------------
    @app.get("/api/draft")
    @login_required
    def get_draft() -> Any:
        return jsonify(drafts.load().to_dict())

    @app.put("/api/draft")
    @login_required
    def save_draft() -> Any:
        payload = _get_payload(request)
        draft = _draft_from_payload(payload, drafts.load(), store.currency_rate)
        drafts.save(draft)
        return jsonify(draft.to_dict())

    @app.delete("/api/draft")
    @login_required
    def reset_draft() -> Any:
        return jsonify(drafts.reset().to_dict())

    @app.get("/api/notifications")
    def notifications() -> Any:
        messages = get_flashed_messages(with_categories=True)
        return jsonify([{"category": category, "message": message} for category, message in messages])

    return app


def _get_payload(req: Any) -> Dict[str, Any]:
    if req.is_json:
        payload = req.get_json(silent=True)
        return payload if isinstance(payload, dict) else {}
    if req.form:
        return req.form.to_dict()
    payload = req.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _parse_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value or "").strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    return default


def _is_confirmed(req: Any) -> bool:
    value = _get_payload(req).get("confirm")
    if value is None:
        value = req.args.get("confirm")
    return _parse_bool(value, False)


def _draft_from_payload(payload: Dict[str, Any], base: Draft, rate: float) -> Draft:
    """Overlay form fields on ``base``; a lone price edit drives the other price."""

    draft = base
    if "name" in payload:
        draft = replace(draft, name=str(payload.get("name") or ""))
    if "quantity" in payload:
        quantity = coerce_number(payload.get("quantity"), 1)
        draft = replace(draft, quantity=1 if quantity is None else quantity)
    if "description" in payload:
        draft = replace(draft, description=str(payload.get("description") or ""))
    if "show_descriptions" in payload:
        draft = replace(
            draft,
            show_descriptions=_parse_bool(payload.get("show_descriptions"), draft.show_descriptions),
        )
    if payload.get("active_category") in CATEGORIES:
        draft = replace(draft, active_category=payload["active_category"])
    has_ksh = "price_ksh" in payload
    has_usd = "price_usd" in payload
    ksh = coerce_number(payload.get("price_ksh"), 0) or 0
    usd = coerce_number(payload.get("price_usd"), 0) or 0
    if has_ksh and has_usd:
        draft = replace(draft, price_ksh=ksh, price_usd=usd)
    elif has_ksh:
        draft = draft.with_price_ksh(ksh, rate)
    elif has_usd:
        draft = draft.with_price_usd(usd, rate)
    return draft


def _apply_item_changes(item: StockItem, payload: Dict[str, Any], rate: float) -> StockItem:
    """Overlay edited fields on ``item``; a lone price edit drives the other price."""

    changes: Dict[str, Any] = {}
    if "name" in payload:
        name = str(payload.get("name") or "").strip()
        if not name:
            raise ValidationError("Please enter a name.")
        changes["name"] = name
    if "quantity" in payload:
        quantity = coerce_number(payload.get("quantity"), None)
        if quantity is None or quantity < 0:
            raise ValidationError("Enter a valid quantity.")
        changes["quantity"] = quantity
    has_ksh = "price_ksh" in payload
    has_usd = "price_usd" in payload
    if has_ksh:
        changes["price_ksh"] = coerce_number(payload.get("price_ksh"), 0) or 0
    if has_usd:
        changes["price_usd"] = coerce_number(payload.get("price_usd"), None)
    if has_ksh and not has_usd:
        changes["price_usd"] = tidy_number(from_primary(changes["price_ksh"], rate))
    elif has_usd and not has_ksh:
        usd = changes["price_usd"] or 0
        changes["price_ksh"] = tidy_number(from_secondary(usd, rate))
    if "description" in payload:
        description = str(payload.get("description") or "").strip()
        changes["description"] = description or None
    return replace(item, **changes)


def _extract_import_text(req: Any) -> str:
    if req.files:
        upload = req.files.get("file")
        if upload is None or upload.filename == "":
            raise ValueError("Missing upload file")
        raw_bytes = upload.read()
        if not raw_bytes:
            raise ValueError("Empty file")
        try:
            return raw_bytes.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ValueError("File must be UTF-8 encoded") from exc
    if req.is_json:
        payload = req.get_json(silent=True)
        if isinstance(payload, dict) and isinstance(payload.get("text"), str):
            return payload["text"]
        raise ValueError("Unsupported import payload")
    text = req.get_data(as_text=True)
    if not text.strip():
        raise ValueError("Empty file")
    return text


__all__ = ["create_app"]
