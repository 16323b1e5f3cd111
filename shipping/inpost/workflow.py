# -*- coding: utf-8 -*-
"""
================================================================================
InPost Courier Shipment Workflow
================================================================================
Purpose:
----------------
This script takes a single parcel from "nothing" to "courier booked" on the
InPost ShipX API (sandbox). Each step depends on the result of the previous
one, so the first failure stops the run.

Key Steps:
1.  **Create Shipment**: The shipment payload (receiver, sender, parcels,
    service) is posted to the organization's shipments endpoint. The response
    gives us the shipment id and the sender's dispatch point id.
2.  **Wait for Confirmation**: InPost confirms shipments asynchronously, so the
    shipment is polled once a second until its status is 'confirmed'. The poll
    gives up after a fixed number of attempts, or straight away on any status
    the operator listed as a failure.
3.  **Generate Label**: The A6 PDF label is downloaded and saved as
    `<shipment_id>_label.pdf`.
4.  **Create Dispatch Order**: A courier pickup is booked for tomorrow, using
    the receiver address and the sender as the contact.
5.  **Generate Dispatch Printout**: The dispatch order PDF is downloaded and
    saved as `<dispatch_id>_printout.pdf`.

Every step writes a timestamped entry to the workflow log file. Nothing is
undone if a later step fails: a created shipment stays created on InPost.
----------------
"""

# =====================================================================================
# --- Imports ---
# =====================================================================================
import os
import sys
import json
import time
import argparse
import itertools
import logging
from datetime import date, timedelta

# --- Project Path Setup ---
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, PROJECT_ROOT)

# --- Module Imports ---
from common.utils import get_inpost_credentials
from shipping.inpost.inpost_api_client import (
    INPOST_API_URL_BASE,
    credentials_are_complete,
    get_inpost_session,
    log_entry,
    create_shipment,
    get_shipment,
    get_shipment_label,
    create_dispatch_order,
    get_dispatch_printout,
)


# =====================================================================================
# --- Configuration ---
# =====================================================================================
INPOST_DIR = os.path.join(PROJECT_ROOT, 'shipping', 'inpost')
# Example shipment used when no --shipment-file is given.
DEFAULT_SHIPMENT_FILE = os.path.join(INPOST_DIR, 'input', 'shipment.json')
PDF_OUTPUT_DIR = os.path.join(INPOST_DIR, 'labels')
LOG_FILE = os.path.join(INPOST_DIR, 'logs', 'inpost_workflow.log')

CONFIRMED_STATUS = 'confirmed'
POLL_INTERVAL_SECONDS = 1
# 0 or None disables the limit.
MAX_CONFIRMATION_ATTEMPTS = 120
SPINNER = ['|', '/', '-', '\\']


def check_poll_settings(max_attempts, poll_interval):
    """Raises ValueError for negative poll settings."""
    if max_attempts is not None and max_attempts < 0:
        raise ValueError(f"max_attempts must be 0 or greater, got {max_attempts}.")
    if poll_interval < 0:
        raise ValueError(f"poll_interval must be 0 or greater, got {poll_interval}.")

def non_negative_int(value):
    """argparse type for --max-attempts."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: '{value}'")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {number}")
    return number

def non_negative_float(value):
    """argparse type for --poll-interval."""
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: '{value}'")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be 0 or greater, got {number}")
    return number


def setup_logging(log_file=LOG_FILE):
    """Sets up the append-only workflow log file."""
    os.makedirs(os.path.dirname(log_file), exist_ok=True)
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.FileHandler(log_file, encoding='utf-8')]
    )
    return logging.getLogger()

def load_shipment_data(shipment_file):
    """
    Reads a shipment payload from a JSON file.

    Returns:
        dict or None: The payload, or None if the file is missing or not valid JSON.
    """
    try:
        with open(shipment_file, 'r', encoding='utf-8') as f:
            shipment_data = json.load(f)
    except FileNotFoundError:
        print(f"ERROR: Shipment file not found: {shipment_file}")
        return None
    except json.JSONDecodeError as e:
        print(f"ERROR: Shipment file {shipment_file} is not valid JSON: {e}")
        return None

    if not isinstance(shipment_data, dict):
        print(f"ERROR: Shipment file {shipment_file} must contain a JSON object.")
        return None
    return shipment_data


# =====================================================================================
# --- Payload Builders ---
# =====================================================================================

def get_collection_date(today=None):
    """Courier pickups are booked for the day after the run."""
    today = today or date.today()
    return (today + timedelta(days=1)).strftime('%Y-%m-%d')

def build_dispatch_order_payload(shipment_data, shipment_id, shipment_status, dispatch_point_id, today=None):
    """
    Builds the dispatch order request. The courier collects from the receiver
    address and calls the sender as the contact person.
    """
    sender = shipment_data['sender']
    return {
        'status': shipment_status,
        'shipments': [shipment_id],
        'dispatch_point_id': [dispatch_point_id],
        'address': shipment_data['receiver']['address'],
        'contact': {
            'name': f"{sender['first_name']} {sender['last_name']}",
            'phone': sender['phone'],
            'email': sender['email'],
        },
        'collection_date': get_collection_date(today),
    }


# =====================================================================================
# --- File Output ---
# =====================================================================================

def save_pdf(content, output_dir, filename):
    """Writes PDF bytes to `output_dir/filename`, creating the directory if needed."""
    os.makedirs(output_dir, exist_ok=True)
    pdf_path = os.path.join(output_dir, filename)
    with open(pdf_path, 'wb') as f:
        f.write(content)
    return pdf_path

def validate_pdf_content(pdf_path):
    """
    Sanity check on a downloaded document: it must open as a PDF and have at
    least one page.
    """
    try:
        # PyPDF2 is a heavy dependency, so we import it only when needed.
        from PyPDF2 import PdfReader
        reader = PdfReader(pdf_path)
        return len(reader.pages) > 0
    except Exception as e:
        print(f"WARNING: Could not read {pdf_path} as a PDF. Reason: {e}")
        return False

def _store_document(content, output_dir, filename, label, logger):
    try:
        pdf_path = save_pdf(content, output_dir, filename)
    except OSError as e:
        details = {'path': os.path.join(output_dir, filename), 'error': str(e)}
        log_entry(logger, f"{label} could not be saved", details, level=logging.ERROR)
        return {'success': False, 'error_type': 'unexpected', 'error': details}

    print(f"{label} Generated: {filename}")
    log_entry(logger, f"{label} Generated", pdf_path)
    if not validate_pdf_content(pdf_path):
        log_entry(logger, f"{label} failed PDF validation", pdf_path, level=logging.WARNING)
    return {'success': True, 'path': pdf_path}


# =====================================================================================
# --- Workflow Steps ---
# =====================================================================================

def _clear_spinner():
    print("\r" + " " * 50 + "\r", end='', flush=True)

def wait_for_shipment_confirmation(session, shipment_id, logger,
                                   max_attempts=MAX_CONFIRMATION_ATTEMPTS,
                                   poll_interval=POLL_INTERVAL_SECONDS,
                                   failure_statuses=()):
    """
    Polls the shipment until InPost reports it as confirmed.

    Args:
        session: Authorized `requests.Session`.
        shipment_id (str): Shipment to watch.
        logger: Workflow logger; every observed status is logged.
        max_attempts (int): Number of polls before giving up. 0 or None polls forever;
            negative values raise ValueError, as does a negative poll_interval.
        poll_interval (float): Seconds to wait between two polls.
        failure_statuses (iterable): Statuses that end the wait as a failure.

    Returns:
        dict: `{'success': True, 'status': ..., 'shipment': ...}` once confirmed,
              otherwise a failure result ('transport', 'unexpected' or 'confirmation').
    """
    check_poll_settings(max_attempts, poll_interval)
    failure_statuses = set(failure_statuses or ())
    endpoint = f"{INPOST_API_URL_BASE}/shipments/{shipment_id}"
    attempts = range(1, max_attempts + 1) if max_attempts else itertools.count(1)

    for attempt in attempts:
        if attempt > 1:
            time.sleep(poll_interval)

        result = get_shipment(session, shipment_id, logger)
        if not result['success']:
            _clear_spinner()
            return result

        status = result['status']
        print(f"\rWaiting for shipment confirmation... {SPINNER[(attempt - 1) % len(SPINNER)]}", end='', flush=True)
        log_entry(logger, 'Shipment status', status)

        if status == CONFIRMED_STATUS:
            _clear_spinner()
            print("Shipment confirmed")
            log_entry(logger, 'Shipment details', result['shipment'])
            return result

        if status in failure_statuses:
            _clear_spinner()
            details = {'endpoint': endpoint, 'error': f"Shipment reached failure status '{status}'."}
            log_entry(logger, 'Shipment confirmation failed', details, level=logging.ERROR)
            return {'success': False, 'error_type': 'confirmation', **details}

    _clear_spinner()
    details = {'endpoint': endpoint, 'error': f"Shipment not confirmed after {max_attempts} attempts."}
    log_entry(logger, 'Shipment confirmation timed out', details, level=logging.ERROR)
    return {'success': False, 'error_type': 'confirmation', **details}

def generate_shipment_label(session, shipment_id, output_dir, logger, debug=False):
    """Downloads the label and saves it as `<shipment_id>_label.pdf`."""
    result = get_shipment_label(session, shipment_id, logger, debug=debug)
    if not result['success']:
        return result
    return _store_document(result['content'], output_dir, f"{shipment_id}_label.pdf", 'Label', logger)

def generate_dispatch_printout(session, dispatch_id, output_dir, logger, debug=False):
    """Downloads the dispatch printout and saves it as `<dispatch_id>_printout.pdf`."""
    result = get_dispatch_printout(session, dispatch_id, logger, debug=debug)
    if not result['success']:
        return result
    return _store_document(result['content'], output_dir, f"{dispatch_id}_printout.pdf", 'Printout', logger)


# =====================================================================================
# --- Main Workflow ---
# =====================================================================================

def _report_failure(result):
    print()
    print(f"Error occurred: {result.get('error')}")
    return False

def process_shipment(session, inpost_creds, shipment_data, logger,
                     output_dir=PDF_OUTPUT_DIR,
                     max_attempts=MAX_CONFIRMATION_ATTEMPTS,
                     poll_interval=POLL_INTERVAL_SECONDS,
                     failure_statuses=(),
                     debug=False):
    """
    Runs the whole shipment workflow for one parcel.

    Returns:
        bool: True if the courier was booked and both documents were saved.
    """
    if session is None or not credentials_are_complete(inpost_creds):
        return _report_failure({'error_type': 'configuration', 'error': 'API token or organization ID not found'})
    # Checked before the shipment exists on InPost.
    try:
        check_poll_settings(max_attempts, poll_interval)
    except ValueError as e:
        return _report_failure({'error_type': 'configuration', 'error': str(e)})

    try:
        log_entry(logger, 'Receiver address', shipment_data['receiver']['address'])

        shipment = create_shipment(session, inpost_creds, shipment_data, logger, debug=debug)
        if not shipment['success']:
            return _report_failure(shipment)
        shipment_id = shipment['shipment_id']
        dispatch_point_id = shipment['dispatch_point_id']
        print(f"Shipment created: {shipment_id}")

        confirmation = wait_for_shipment_confirmation(
            session, shipment_id, logger,
            max_attempts=max_attempts, poll_interval=poll_interval, failure_statuses=failure_statuses
        )
        if not confirmation['success']:
            return _report_failure(confirmation)

        label = generate_shipment_label(session, shipment_id, output_dir, logger, debug=debug)
        if not label['success']:
            return _report_failure(label)

        dispatch_order_data = build_dispatch_order_payload(
            shipment_data, shipment_id, confirmation['status'], dispatch_point_id
        )
        dispatch = create_dispatch_order(session, inpost_creds, dispatch_order_data, logger, debug=debug)
        if not dispatch['success']:
            return _report_failure(dispatch)

        printout = generate_dispatch_printout(session, dispatch['dispatch_id'], output_dir, logger, debug=debug)
        if not printout['success']:
            return _report_failure(printout)

        print(f"Courier ordered for shipment ID: {shipment_id}")
        return True
    except Exception as e:
        log_entry(logger, 'General error', str(e), level=logging.ERROR)
        return _report_failure({'error_type': 'unexpected', 'error': str(e)})


def main(argv=None):
    """
    Command-line entry point.

    Returns:
        int: Process exit code (0 on success).
    """
    parser = argparse.ArgumentParser(description="Create an InPost shipment and order a courier pickup for it.")
    parser.add_argument("--shipment-file", default=DEFAULT_SHIPMENT_FILE,
                        help="JSON file with the shipment payload (receiver, sender, parcels, service).")
    parser.add_argument("--output-dir", default=PDF_OUTPUT_DIR, help="Directory for the label and printout PDFs.")
    parser.add_argument("--log-file", default=LOG_FILE, help="Workflow log file.")
    parser.add_argument("--max-attempts", type=non_negative_int, default=MAX_CONFIRMATION_ATTEMPTS,
                        help="Confirmation polls before giving up (0 = no limit).")
    parser.add_argument("--poll-interval", type=non_negative_float, default=POLL_INTERVAL_SECONDS,
                        help="Seconds between confirmation polls.")
    parser.add_argument("--fail-status", action="append", default=[], metavar="STATUS",
                        help="Shipment status that ends the wait as a failure. May be repeated.")
    parser.add_argument("--verify-tls", action="store_true", help="Verify the API's TLS certificate.")
    parser.add_argument("--debug", action="store_true", help="Log every request payload before it is sent.")
    args = parser.parse_args(argv)

    inpost_creds = get_inpost_credentials()
    if not inpost_creds:
        print("CRITICAL: Cannot proceed without InPost API credentials.")
        return 1

    shipment_data = load_shipment_data(args.shipment_file)
    if shipment_data is None:
        print("CRITICAL: Cannot proceed without a shipment payload.")
        return 1

    logger = setup_logging(args.log_file)
    session = get_inpost_session(inpost_creds, verify_tls=args.verify_tls)

    print("\n--- Processing InPost Shipment ---")
    with session:
        success = process_shipment(
            session, inpost_creds, shipment_data, logger,
            output_dir=args.output_dir,
            max_attempts=args.max_attempts,
            poll_interval=args.poll_interval,
            failure_statuses=args.fail_status,
            debug=args.debug,
        )
    if success:
        print("SUCCESS: Shipment processed successfully.")
        return 0
    print("ERROR: Shipment processing failed.")
    return 1


if __name__ == '__main__':
    sys.exit(main())
