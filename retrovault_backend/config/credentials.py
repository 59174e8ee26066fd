"""
Credential management for Firebase Admin and Firestore
Resolves the service account from several sources and hands out a Firestore client
"""
import os
import json
import logging

import firebase_admin
from firebase_admin import credentials, firestore

from retrovault_backend.config import environment

logger = logging.getLogger(__name__)


class CredentialManager:
    """Manages Firebase Admin initialization and the shared Firestore client"""

    def __init__(self):
        self.firebase_app = None
        self.firestore_client = None

    def _initialize_firebase(self):
        """Initialize Firebase Admin SDK"""
        # Check if Firebase is already initialized
        if firebase_admin._apps:
            logger.info("Firebase already initialized")
            self.firebase_app = firebase_admin.get_app()
            return

        options = {'projectId': environment.FIREBASE_PROJECT_ID} if environment.FIREBASE_PROJECT_ID else None
        key_path = environment.FIREBASE_KEY_PATH

        try:
            if key_path and os.path.exists(key_path):
                # Use Secret File (production)
                logger.info(f"Initializing Firebase with Secret File: {key_path}")
                cred = credentials.Certificate(key_path)

            elif environment.FIREBASE_CREDENTIALS_JSON:
                # Use environment variable JSON (fallback)
                firebase_creds = json.loads(environment.FIREBASE_CREDENTIALS_JSON)
                if 'private_key' in firebase_creds:
                    firebase_creds['private_key'] = firebase_creds['private_key'].replace('\\n', '\n')
                logger.info("Initializing Firebase with environment variable JSON")
                cred = credentials.Certificate(firebase_creds)

            elif os.path.exists(environment.FIREBASE_LOCAL_KEY_FILE):
                # Use local file (development)
                logger.info(f"Initializing Firebase with local file: {environment.FIREBASE_LOCAL_KEY_FILE}")
                cred = credentials.Certificate(environment.FIREBASE_LOCAL_KEY_FILE)

            else:
                # Application default credentials (gcloud, emulator, Cloud Run)
                logger.warning("No Firebase key found, falling back to application default credentials")
                cred = credentials.ApplicationDefault()

            self.firebase_app = firebase_admin.initialize_app(cred, options)

        except Exception as e:
            logger.error(f"Failed to initialize Firebase: {e}")
            raise

    def get_firebase_app(self):
        """Get Firebase app instance, initializing on first use"""
        if self.firebase_app is None:
            self._initialize_firebase()
        return self.firebase_app

    def get_firestore_client(self):
        """Get the Firestore client, initializing Firebase on first use"""
        if self.firestore_client is None:
            self.firestore_client = firestore.client(self.get_firebase_app())
        return self.firestore_client

    def is_firebase_available(self):
        """Check if Firebase is properly initialized"""
        return self.firebase_app is not None


# Global instance
credential_manager = CredentialManager()
