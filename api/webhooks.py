"""
Webhook relay from the payment provider (Polka).
Authenticated with the shared API key, not with user tokens.
"""
from __future__ import annotations

import logging

from flask import Blueprint, request, abort

from models.user import User
from models.schemas.webhook import WebhookDataSchema, WebhookEventSchema
from security.decorators import api_key_required, get_auth_service

logger = logging.getLogger(__name__)

bp = Blueprint("webhooks", __name__, url_prefix="/polka")

webhook_event_schema = WebhookEventSchema()
webhook_data_schema = WebhookDataSchema()

USER_UPGRADED = "user.upgraded"


@bp.post("/webhooks")
@api_key_required()
def polka_webhook():
    """
    Handle a Polka event. Only user.upgraded changes state.
    ---
    tags:
      - Webhooks
    security:
      - ApiKey: []
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            event: { type: string }
            data:
              type: object
              properties:
                user_id: { type: string }
    responses:
      204:
        description: Accepted
      401:
        description: Missing or wrong API key
      404:
        description: User not found
    """
    payload = request.get_json(silent=True) or {}
    event = webhook_event_schema.load(payload)
    if event["event"] != USER_UPGRADED:
        return ("", 204)
    if not event.get("data"):
        abort(422, description="data.user_id is required")
    data = webhook_data_schema.load(event["data"])

    storage = get_auth_service().storage
    user = storage.get(User, str(data["user_id"]))
    if user is None:
        abort(404, description="User not found")

    user.is_chirpy_red = True
    storage.new(user)
    storage.save()
    logger.info("User %s upgraded to Chirpy Red", user.id)
    return ("", 204)
