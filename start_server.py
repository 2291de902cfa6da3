"""
Automatic Server Starter for the Department Feedback Portal
This script detects the local IP, initializes the database and starts the server.
"""

import sys
import socket
import logging
import threading
import time
import webbrowser

logger = logging.getLogger(__name__)


def get_local_ip():
    """Get the local IP address of the machine."""
    try:
        # Create a socket to get the local IP
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        local_ip = s.getsockname()[0]
        s.close()
        return local_ip
    except OSError as e:
        logger.error(f"Error getting local IP: {e}")
        return "127.0.0.1"


def check_port_available(host, port):
    """Check if a port is available."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host, port))
        return True
    except OSError:
        return False
    finally:
        sock.close()


def pick_port(host, ports=(5000, 8080, 8000, 3000, 5001)):
    """First free port from `ports`, or None."""
    for port in ports:
        if check_port_available(host, port):
            logger.info(f"Port {port} is available")
            return port
        logger.warning(f"Port {port} is already in use")
    return None


def start_server(open_browser=True):
    """Start the portal with automatic configuration."""
    # Importing the app installs the rich log handler
    from app import asgi_app
    from portal.models import init_db
    import uvicorn

    logger.info("=" * 60)
    logger.info("Department Feedback Portal - Starting Server")
    logger.info("=" * 60)

    init_db()

    host_ip = get_local_ip()
    logger.info(f"Detected Local IP: {host_ip}")

    selected_port = pick_port(host_ip)
    if not selected_port:
        logger.error("No available ports found. Please close other applications.")
        sys.exit(1)

    logger.info(f"Server will be accessible at:")
    logger.info(f"  Local:   http://localhost:{selected_port}")
    logger.info(f"  Network: http://{host_ip}:{selected_port}")
    logger.info("Press Ctrl+C to stop the server")

    if open_browser:
        def _open():
            time.sleep(2)
            webbrowser.open(f"http://localhost:{selected_port}")

        threading.Thread(target=_open, daemon=True).start()

    try:
        uvicorn.run(asgi_app, host=host_ip, port=selected_port, log_config=None)
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    start_server()
