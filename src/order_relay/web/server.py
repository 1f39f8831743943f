import os, json, logging
from typing import Optional

from flask import Flask, Response, jsonify, request
from dotenv import load_dotenv

from ..config.config import AppConfig, load_config
from ..core.catalog import Catalog
from ..core.proxy import OrderProxy
from ..core.session import AUTH_COOKIE, AUTH_COOKIE_MAX_AGE, AUTH_COOKIE_VALUE, check_credentials

load_dotenv()
logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
log = logging.getLogger("relay")


def create_app(cfg: Optional[AppConfig] = None, proxy: Optional[OrderProxy] = None) -> Flask:
    """Build the Flask app around one immutable configuration.

    ``proxy`` may be injected (tests pass one with a fake upstream call).
    """
    cfg = cfg or load_config()
    proxy = proxy or OrderProxy(cfg.proxy)
    catalog = Catalog(cfg.catalog)

    app = Flask(__name__)

    @app.get("/health")
    def health():
        return {"ok": True}

    @app.post("/api/order")
    def order():
        result = proxy.handle(request.get_data())
        return Response(result.body, status=result.status, headers=result.headers)

    @app.post("/api/login")
    def login():
        body = request.get_json(force=True, silent=True)
        if not isinstance(body, dict):
            return jsonify({"error": "Bad request"}), 400

        username = body.get("username")
        if not check_credentials(username, body.get("password"), cfg.username, cfg.password):
            log.info("Rejected login for %r", username)
            return jsonify({"error": "Invalid credentials"}), 401

        log.info("Login succeeded for %r", username)
        resp = jsonify({"success": True})
        resp.set_cookie(
            AUTH_COOKIE,
            AUTH_COOKIE_VALUE,
            max_age=AUTH_COOKIE_MAX_AGE,
            path="/",
            httponly=True,
            samesite="Lax",
            secure=cfg.production,
        )
        return resp

    @app.post("/api/logout")
    def logout():
        resp = jsonify({"success": True})
        resp.delete_cookie(AUTH_COOKIE, path="/")
        return resp

    @app.get("/api/products")
    def list_products():
        return jsonify(catalog.list_products())

    @app.post("/api/products")
    def echo_products():
        """Echo the received body back; handy as a local upstream for the proxy."""
        content_type = request.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                body = json.loads(request.get_data(as_text=True))
            except ValueError:
                return jsonify({"error": "Bad request"}), 400
        else:
            body = request.get_data(as_text=True)

        log.info("[POST /api/products] content-type=%s", content_type)
        log.info("[POST /api/products] body => %s", json.dumps(body)[:500])
        return jsonify({"body": body})

    @app.get("/api/products/<product_id>")
    def get_product(product_id: str):
        row = catalog.get_product(product_id)
        if row is None:
            return jsonify({"error": "Product not found"}), 404
        return jsonify(row)

    @app.get("/api/users/<user_id>")
    def get_user(user_id: str):
        row = catalog.get_user(user_id)
        if row is None:
            return jsonify({"error": "User not found"}), 404
        return jsonify(row)

    return app


if __name__ == "__main__":
    port = int(os.getenv("SERVER_PORT", "8080"))
    create_app().run(host="0.0.0.0", port=port)
