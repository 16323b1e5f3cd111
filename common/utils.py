# -*- coding: utf-8 -*-
"""
================================================================================
Common Utility Functions
================================================================================
Purpose:
----------------
This script provides the credential lookup shared by the InPost workflow.
Secrets are read from the process environment first and, failing that, from
a `secrets.txt` file in the project root.

Key Functions:
- `get_secret(key_name)`: Looks up a single key in the environment, then in
  `secrets.txt` (one `KEY_NAME=SECRET_VALUE` per line).
- `get_inpost_credentials()`: Retrieves the InPost API token and organization
  ID together and returns them as a dictionary, or None if either is missing.
----------------
"""

# =====================================================================================
# --- Imports and Configuration ---
# =====================================================================================
import os

# `secrets.txt` lives one level above this file, in the project root.
SECRETS_FILE = os.path.join(os.path.dirname(__file__), '..', 'secrets.txt')


# =====================================================================================
# --- Core Functions ---
# =====================================================================================

def get_secret(key_name):
    """
    Reads a specific key from the environment or the `secrets.txt` file.

    An environment variable with the same name wins over the file so that
    the workflow can be run without a secrets file on disk.

    Args:
        key_name (str): The name of the key to retrieve (e.g., "INPOST_API_TOKEN").

    Returns:
        str or None: The secret value if the key is found and non-empty, otherwise None.
    """
    env_value = os.getenv(key_name, '').strip()
    if env_value:
        return env_value

    try:
        with open(SECRETS_FILE, 'r') as f:
            for line in f:
                if line.startswith(key_name + '='):
                    secret_value = line.strip().split('=', 1)[1].strip()
                    return secret_value or None
        print(f"ERROR: Key '{key_name}' not found in environment or {SECRETS_FILE}")
        return None
    except FileNotFoundError:
        print(f"ERROR: Key '{key_name}' not set and {SECRETS_FILE} not found.")
        return None

def get_inpost_credentials():
    """
    Retrieves both InPost ShipX credentials at once.

    Returns:
        dict: `{'api_token': ..., 'organization_id': ...}` if both are found.
        None: If either credential is missing or empty.
    """
    api_token = get_secret('INPOST_API_TOKEN')
    organization_id = get_secret('INPOST_ORGANIZATION_ID')

    if all([api_token, organization_id]):
        return {'api_token': api_token, 'organization_id': organization_id}
    else:
        print("ERROR: API token or organization ID not found.")
        return None
