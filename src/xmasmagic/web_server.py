"""
Web server for xmasmagic.
Exposes the image-to-image and text-to-image calls as a small JSON API.
"""

import asyncio
from typing import Any, Callable, Dict, Optional, Type

from flask import Flask, jsonify, request
from flask_cors import CORS
from pydantic import BaseModel, ValidationError
from werkzeug.exceptions import HTTPException

from xmasmagic.core import generate_image_to_image, generate_text_to_image
from xmasmagic.exceptions import InvalidRequest, status_for_error
from xmasmagic.models import ImageToImagePayload, TextToImagePayload
from xmasmagic.providers.ark_provider import ArkProvider
from xmasmagic.providers.base_provider import BaseImageProvider
from xmasmagic.sizes import DEFAULT_SIZE, SIZE_PRESETS

ProviderFactory = Callable[[], BaseImageProvider]

PROVIDER_FACTORY_EXTENSION = "xmasmagic.provider_factory"


def decode_payload(data: Any, model: Type[BaseModel]) -> Any:
    """Decode a JSON body into ``model`` or raise ``InvalidRequest``."""
    if not isinstance(data, dict):
        raise InvalidRequest("invalid request body: expected a JSON object")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise InvalidRequest(f"invalid request body: {e}") from e


def error_response(error: Exception):
    message = str(error)
    return jsonify({"error": message}), status_for_error(error, message)


async def _call_with_provider(generate, params, api_key, factory: ProviderFactory):
    # Each request runs in its own event loop, so the provider (and its
    # connection pool) must live and die inside that loop.
    provider = factory()
    try:
        return await generate(params, api_key, provider)
    finally:
        await provider.close()


def create_app(provider_factory: Optional[ProviderFactory] = None) -> Flask:
    app = Flask(__name__)
    CORS(app)  # Enable CORS for all routes
    app.config["MAX_CONTENT_LENGTH"] = 64 * 1024 * 1024
    app.extensions[PROVIDER_FACTORY_EXTENSION] = provider_factory or ArkProvider

    def _run(generate, payload) -> Dict[str, Any]:
        return asyncio.run(
            _call_with_provider(
                generate,
                payload.to_params(),
                payload.api_key,
                app.extensions[PROVIDER_FACTORY_EXTENSION],
            )
        )

    @app.route("/api/ai/i2i", methods=["POST"])
    def image_to_image():
        """Restyle one or more input images"""
        try:
            payload = decode_payload(
                request.get_json(silent=True), ImageToImagePayload
            )
            return jsonify(_run(generate_image_to_image, payload))
        except HTTPException:
            raise
        except Exception as e:
            app.logger.warning(f"i2i request failed: {e}")
            return error_response(e)

    @app.route("/api/ai/t2i", methods=["POST"])
    def text_to_image():
        """Generate images from a prompt alone"""
        try:
            payload = decode_payload(
                request.get_json(silent=True), TextToImagePayload
            )
            return jsonify(_run(generate_text_to_image, payload))
        except HTTPException:
            raise
        except Exception as e:
            app.logger.warning(f"t2i request failed: {e}")
            return error_response(e)

    @app.route("/api/sizes")
    def list_sizes():
        return jsonify({"presets": SIZE_PRESETS, "default": DEFAULT_SIZE})

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Endpoint not found"}), 404

    @app.errorhandler(413)
    def too_large(error):
        return jsonify({"error": "Request body too large"}), 413

    @app.errorhandler(500)
    def internal_error(error):
        return jsonify({"error": "Internal server error"}), 500

    return app
