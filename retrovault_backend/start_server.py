#!/usr/bin/env python3
"""
Start the RetroVault local API server
"""

import logging
import sys

from retrovault_backend.app import app
from retrovault_backend.config import environment


def main():
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    print("Starting RetroVault local API server...")
    print(f"🚀 Server will be available at: http://localhost:{environment.PORT}")
    print(f"📡 Sync endpoint: http://localhost:{environment.PORT}/sync")
    print("Press Ctrl+C to stop the server")

    try:
        app.run(debug=True, host='0.0.0.0', port=environment.PORT)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        return 0
    except Exception as e:
        print(f"Error starting server: {e}")
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
