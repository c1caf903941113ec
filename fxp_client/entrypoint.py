#!/usr/bin/env python3
"""
Entry point for the dFXP client.

Starts the Streamlit FXP client UI. Used as the `dfxp-ui` console script
and as the Docker container command.
"""

import argparse
import logging
import os
import subprocess
import sys

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("dFXP-Client")

FAST_START = os.getenv('CLIENT_FAST_START', '0').lower() in ('1', 'true', 'yes')
APP_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'ui', 'app.py')


def setup_environment():
    """Set environment variables for a container friendly Streamlit run."""
    logger.info("Setting up environment...")
    os.environ['PYTHONUNBUFFERED'] = '1'                  # Unbuffered output
    os.environ['STREAMLIT_TELEMETRY_ENABLED'] = 'false'  # Disable Streamlit telemetry
    logger.info("Environment setup complete")


def verify_dependencies():
    """
    Verify that all required Python modules are available.
    This helps catch missing dependencies early.
    """
    logger.info("Verifying dependencies...")

    if FAST_START:
        logger.info("FAST_START enabled — skipping dependency verification")
        return True

    required_modules = ['streamlit', 'fxp_client.core']

    for module in required_modules:
        try:
            __import__(module)
            logger.info(f"✓ {module} available")
        except ImportError:
            logger.error(f"✗ Missing required module: {module}")
            return False

    if not os.path.exists(APP_PATH):
        logger.error(f"✗ Missing file: {APP_PATH}")
        return False

    logger.info("All dependencies verified")
    return True


def build_command(host, port, log_level):
    return [
        'streamlit',
        'run',
        APP_PATH,
        f'--server.port={port}',
        f'--server.address={host}',
        f'--logger.level={log_level}',
        '--client.showErrorDetails=true'
    ]


def start_streamlit_client(host='0.0.0.0', port=8501, log_level='info'):
    """
    Start the Streamlit FXP client UI.

    Args:
        host: Host to bind Streamlit to (default: 0.0.0.0 for Docker)
        port: Port to expose Streamlit on (default: 8501)
    """
    logger.info(f"Starting Streamlit FXP Client UI on {host}:{port}...")
    cmd = build_command(host, port, log_level)

    # Replace the current process with the Streamlit process for proper signal handling
    try:
        os.execvp(cmd[0], cmd)
    except OSError as e:
        logger.error(f"Failed to exec Streamlit: {e}")
        # Fallback to subprocess.run for better diagnostics
        try:
            subprocess.run([sys.executable, '-m'] + cmd, check=True)
        except subprocess.CalledProcessError as e2:
            logger.error(f"Streamlit exited with error code {e2.returncode}")
            sys.exit(e2.returncode)


def build_parser():
    parser = argparse.ArgumentParser(description="dFXP client UI")
    parser.add_argument("--host", default=os.getenv('DFXP_UI_HOST', '0.0.0.0'), help="Address to bind the UI to")
    parser.add_argument("--port", type=int, default=int(os.getenv('DFXP_UI_PORT', '8501')), help="UI port")
    parser.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logger.info("=" * 70)
    logger.info("dFXP Client Startup")
    logger.info("=" * 70)

    setup_environment()

    if not verify_dependencies():
        logger.error("Dependency verification failed")
        sys.exit(1)

    start_streamlit_client(args.host, args.port, args.log_level)


if __name__ == '__main__':
    main()
