# -*- coding: utf-8 -*-
"""
================================================================================
InPost ShipX API Client
================================================================================
Purpose:
----------------
Thin wrappers around the ShipX REST endpoints used by the InPost courier
workflow. Every function takes an authorized `requests.Session` (see
`get_inpost_session`) and a logger, and returns a result dictionary instead of
raising:

    {'success': True, ...step specific keys...}
    {'success': False, 'error_type': ..., 'endpoint': ..., 'error': ...}

`error_type` is either 'transport' or 'unexpected'. A failed
call writes exactly one ERROR entry to the log with the endpoint, the request
payload (when there is one) and the provider's error body.
----------------
"""

# =====================================================================================
# --- Imports ---
# =====================================================================================
import os
import json
import logging
import requests


# =====================================================================================
# --- Configuration ---
# =====================================================================================
# Sandbox endpoint. Point INPOST_API_BASE_URL at the production API when ready.
INPOST_API_URL_BASE = os.getenv('INPOST_API_BASE_URL', 'https://sandbox-api-shipx-pl.easypack24.net/v1')
REQUEST_TIMEOUT_SECONDS = 30
LABEL_FORMAT = 'Pdf'
LABEL_TYPE = 'A6'


# =====================================================================================
# --- Session & Logging Helpers ---
# =====================================================================================

def credentials_are_complete(inpost_creds):
    """True if both the API token and the organization ID are non-empty strings."""
    if not inpost_creds:
        return False
    return all([
        str(inpost_creds.get('api_token') or '').strip(),
        str(inpost_creds.get('organization_id') or '').strip(),
    ])

def get_inpost_session(inpost_creds, verify_tls=False):
    """
    Returns a `requests.Session` carrying the bearer token and JSON headers,
    or None if the credentials are incomplete.

    TLS verification is off by default because the sandbox is the only target.
    """
    if not credentials_are_complete(inpost_creds):
        return None
    session = requests.Session()
    session.headers.update({
        'Authorization': f"Bearer {inpost_creds['api_token']}",
        'Content-Type': 'application/json',
        'Accept': 'application/json',
    })
    session.verify = verify_tls
    return session

def format_payload(data):
    """Serializes a payload for the log file; bytes and odd types fall back to str()."""
    if isinstance(data, str):
        return data
    try:
        return json.dumps(data, indent=2, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(data)

def log_entry(logger, message, data, level=logging.INFO):
    """Writes one `<message>\\n<payload>` entry to the workflow log."""
    logger.log(level, "%s\n%s", message, format_payload(data))

def extract_error_details(exc):
    """
    Pulls the provider's error body out of a failed request. ShipX answers
    with JSON errors, so the body is decoded when possible.
    """
    response = getattr(exc, 'response', None)
    if response is None:
        return {'message': str(exc)}
    try:
        return json.loads(response.text)
    except (TypeError, ValueError):
        return response.text or str(exc)

def _request_failed(logger, message, endpoint, exc, payload=None):
    error_details = extract_error_details(exc)
    entry = {'endpoint': endpoint, 'error': error_details}
    if payload is not None:
        entry['data'] = payload
    log_entry(logger, message, entry, level=logging.ERROR)
    return {'success': False, 'error_type': 'transport', 'endpoint': endpoint, 'error': error_details}

def _unexpected_response(logger, message, endpoint, details):
    log_entry(logger, message, {'endpoint': endpoint, 'error': details}, level=logging.ERROR)
    return {'success': False, 'error_type': 'unexpected', 'endpoint': endpoint, 'error': details}


# =====================================================================================
# --- Shipments ---
# =====================================================================================

def create_shipment(session, inpost_creds, shipment_data, logger, debug=False):
    """
    Creates a shipment for the organization.

    Returns:
        dict: On success, `shipment_id`, `dispatch_point_id` (the sender's id,
              needed later for the dispatch order), `status` and the raw
              `shipment` response.
    """
    endpoint = f"{INPOST_API_URL_BASE}/organizations/{inpost_creds['organization_id']}/shipments"
    if debug:
        log_entry(logger, 'Shipment Request', {'endpoint': endpoint, 'data': shipment_data})

    try:
        response = session.post(endpoint, json=shipment_data, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        return _request_failed(logger, 'Shipment creation failed', endpoint, e, payload=shipment_data)

    try:
        shipment_result = response.json()
    except ValueError as e:
        return _unexpected_response(logger, 'Shipment creation failed', endpoint, f"Invalid JSON in response: {e}")

    shipment_id = shipment_result.get('id')
    dispatch_point_id = (shipment_result.get('sender') or {}).get('id')
    if shipment_id is None or dispatch_point_id is None:
        return _unexpected_response(
            logger, 'Shipment creation failed', endpoint,
            {'message': 'Response is missing the shipment id or sender id.', 'response': shipment_result}
        )

    log_entry(logger, 'Shipment created', shipment_result)
    return {
        'success': True,
        'shipment_id': str(shipment_id),
        'dispatch_point_id': str(dispatch_point_id),
        'status': shipment_result.get('status'),
        'shipment': shipment_result,
    }

def get_shipment(session, shipment_id, logger):
    """Fetches the current state of a shipment. Used by the confirmation poll."""
    endpoint = f"{INPOST_API_URL_BASE}/shipments/{shipment_id}"
    try:
        response = session.get(endpoint, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        return _request_failed(logger, 'Shipment status check failed', endpoint, e)

    try:
        shipment_result = response.json()
    except ValueError as e:
        return _unexpected_response(logger, 'Shipment status check failed', endpoint, f"Invalid JSON in response: {e}")
    return {'success': True, 'status': shipment_result.get('status'), 'shipment': shipment_result}

def get_shipment_label(session, shipment_id, logger, debug=False):
    """Downloads the PDF label of a confirmed shipment. Returns the raw bytes as `content`."""
    endpoint = f"{INPOST_API_URL_BASE}/shipments/{shipment_id}/label"
    params = {'format': LABEL_FORMAT, 'type': LABEL_TYPE}
    if debug:
        log_entry(logger, 'Label Request', {'endpoint': endpoint, 'params': params})

    try:
        response = session.get(endpoint, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        return _request_failed(logger, 'Label generation failed', endpoint, e, payload=params)
    return {'success': True, 'content': response.content}


# =====================================================================================
# --- Dispatch Orders ---
# =====================================================================================

def create_dispatch_order(session, inpost_creds, dispatch_order_data, logger, debug=False):
    """Orders a courier pickup. Returns the provider's order id as `dispatch_id`."""
    endpoint = f"{INPOST_API_URL_BASE}/organizations/{inpost_creds['organization_id']}/dispatch_orders"
    if debug:
        log_entry(logger, 'Dispatch Order Request', {'endpoint': endpoint, 'data': dispatch_order_data})

    try:
        response = session.post(endpoint, json=dispatch_order_data, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        return _request_failed(logger, 'Dispatch order creation failed', endpoint, e, payload=dispatch_order_data)

    try:
        dispatch_result = response.json()
    except ValueError as e:
        return _unexpected_response(logger, 'Dispatch order creation failed', endpoint, f"Invalid JSON in response: {e}")

    if dispatch_result.get('id') is None:
        return _unexpected_response(
            logger, 'Dispatch order creation failed', endpoint,
            {'message': 'Response is missing the dispatch order id.', 'response': dispatch_result}
        )

    log_entry(logger, 'Courier ordered', dispatch_result)
    return {'success': True, 'dispatch_id': str(dispatch_result['id']), 'dispatch_order': dispatch_result}

def get_dispatch_printout(session, dispatch_id, logger, debug=False):
    """Downloads the PDF printout handed to the courier at pickup."""
    endpoint = f"{INPOST_API_URL_BASE}/dispatch_orders/{dispatch_id}/printout"
    params = {'format': LABEL_FORMAT}
    if debug:
        log_entry(logger, 'Dispatch Printout Request', {'endpoint': endpoint, 'params': params})

    try:
        response = session.get(endpoint, params=params, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        return _request_failed(logger, 'Dispatch printout generation failed', endpoint, e, payload=params)
    return {'success': True, 'content': response.content}
