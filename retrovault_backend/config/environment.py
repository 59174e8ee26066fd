"""
Environment Configuration for RetroVault Backend

This module provides centralized access to environment variables for:
- Firebase / Firestore credentials
- User profile defaults written by migrations and seeding
- Nessie API configuration used by the sync endpoint
- Local API server settings
"""

import os
from dotenv import load_dotenv

# Load environment variables from a local .env file when present
load_dotenv()

# Firebase Configuration
FIREBASE_KEY_PATH = os.environ.get('FIREBASE_KEY_PATH', '')
FIREBASE_CREDENTIALS_JSON = os.environ.get('FIREBASE_CREDENTIALS_JSON', '')
FIREBASE_PROJECT_ID = os.environ.get('FIREBASE_PROJECT_ID', '')
FIREBASE_LOCAL_KEY_FILE = os.environ.get('FIREBASE_LOCAL_KEY_FILE', 'serviceAccountKey.json')

# Profile defaults
DEFAULT_CURRENCY = os.environ.get('RETROVAULT_CURRENCY', 'USD')
DEFAULT_TIMEZONE = os.environ.get('RETROVAULT_TIMEZONE', 'UTC')

# Nessie API Configuration
NESSIE_API_KEY = os.environ.get('NESSIE_API_KEY', '')
NESSIE_BASE_URL = os.environ.get('NESSIE_BASE_URL', 'http://api.nessieisreal.com')
NESSIE_TIMEOUT = int(os.environ.get('NESSIE_TIMEOUT', '8'))

# Local API server
PORT = int(os.environ.get('PORT', '3001'))

# Firestore accepts at most 500 writes per batch
FIRESTORE_BATCH_LIMIT = 500


def is_nessie_configured():
    """Check if a usable Nessie API key is set"""
    return bool(NESSIE_API_KEY) and NESSIE_API_KEY != 'your_nessie_api_key_here'
