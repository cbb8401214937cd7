"""
API key blueprint. The plaintext key is only ever returned by POST /api-keys.
"""
from __future__ import annotations

from flask import Blueprint, request, g

from api.errors import result_response
from utils.decorators import auth_required, get_core

bp = Blueprint("api_keys", __name__)


@bp.post("/api-keys")
@auth_required()
def create_api_key():
    """
    Create an API key for the current user
    ---
    tags:
      - API Keys
    security:
      - Bearer: []
      - ApiKey: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           required: [name]
           properties:
             name: { type: string }
             scopes:
               type: array
               items: { type: string }
             expires_at: { type: string, format: date-time }
    responses:
      201:
        description: Created (the response carries the plaintext key once)
      400:
        description: Validation error or key limit reached
      401:
        description: Unauthorized
    """
    payload = request.get_json(silent=True) or {}
    return result_response(get_core().create_api_key(g.current_user.id, payload), success_status=201)


@bp.get("/api-keys")
@auth_required()
def list_api_keys():
    """
    List the current user's API keys (metadata only)
    ---
    tags:
      - API Keys
    security:
      - Bearer: []
      - ApiKey: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return result_response(get_core().list_api_keys(g.current_user.id))


@bp.delete("/api-keys/<string:key_id>")
@auth_required()
def revoke_api_key(key_id: str):
    """
    Revoke one of the current user's API keys
    ---
    tags:
      - API Keys
    security:
      - Bearer: []
      - ApiKey: []
    parameters:
      - in: path
        name: key_id
        type: string
        required: true
    responses:
      200:
        description: Revoked
      404:
        description: API key not found
    """
    return result_response(get_core().revoke_api_key(g.current_user.id, key_id))
