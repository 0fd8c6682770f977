#!/usr/bin/env python3
"""
Family Companion Server - System Runner
Starts the server, checks its health and offers an interactive menu.
"""

import sys
import asyncio
import logging
import subprocess
import time
import signal
import threading
from pathlib import Path

project_root = Path(__file__).parent

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class SystemRunner:
    def __init__(self, host="0.0.0.0", port=8000):
        self.project_root = project_root
        self.host = host
        self.port = port
        self.base_url = f"http://localhost:{port}"
        self.server_process = None
        self.running = False

    def check_dependencies(self):
        """Check if all dependencies are installed"""
        try:
            import fastapi  # noqa: F401
            import uvicorn  # noqa: F401
            import websockets  # noqa: F401
            import pydantic_settings  # noqa: F401
            import sqlalchemy  # noqa: F401
            import aiosqlite  # noqa: F401
            import redis  # noqa: F401
            import openai  # noqa: F401
            logger.info("All required dependencies found")
            return True
        except ImportError as e:
            logger.error(f"Missing dependency: {e}")
            logger.info("Run: pip install -e .")
            return False

    def check_configuration(self):
        from family_companion.config import settings

        has_errors = False
        for issue in settings.validate_config():
            if issue.startswith("ERROR"):
                logger.error(issue)
                has_errors = True
            else:
                logger.warning(issue)

        if not has_errors:
            logger.info("Configuration validated")
        return not has_errors

    def start_server(self):
        logger.info("Starting FastAPI server...")

        cmd = [
            sys.executable, "-m", "uvicorn",
            "family_companion.main:app",
            "--host", self.host,
            "--port", str(self.port),
            "--log-level", "info"
        ]

        self.server_process = subprocess.Popen(
            cmd,
            cwd=self.project_root,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            universal_newlines=True,
            bufsize=1
        )

        def monitor_server():
            for line in iter(self.server_process.stdout.readline, ''):
                if line.strip():
                    print(f"[SERVER] {line.strip()}")
                    if "Uvicorn running on" in line:
                        logger.info("Server started successfully")

        monitor_thread = threading.Thread(target=monitor_server, daemon=True)
        monitor_thread.start()

        time.sleep(3)

        if self.server_process.poll() is None:
            logger.info("Server is running")
            return True
        logger.error("Server failed to start")
        return False

    def test_server_health(self):
        import requests
        try:
            response = requests.get(f"{self.base_url}/status", timeout=5)
        except requests.RequestException as e:
            logger.warning(f"Health check failed (server may still be starting): {e}")
            return False

        if response.status_code != 200:
            logger.error(f"Server health check failed: {response.status_code}")
            return False

        data = response.json()
        logger.info("Server health check passed")
        logger.info(f"   Status: {data.get('status')}")
        logger.info(f"   Active connections: {data.get('active_connections')}")
        logger.info(f"   Responder: {data.get('llm')}")
        return True

    def run_client(self, interactive, agent_id="grace"):
        from testing.client import CompanionTestClient

        client = CompanionTestClient(
            agent_id=agent_id,
            user_id=2 if agent_id == "alex" else 1,
            host=f"localhost:{self.port}"
        )
        try:
            asyncio.run(client.run(interactive=interactive))
        except KeyboardInterrupt:
            logger.info("Test client stopped by user")
        except Exception as e:
            logger.error(f"Test client error: {e}")

    def show_system_info(self):
        print("\n" + "=" * 60)
        print("Family Companion Server - RUNNING")
        print("=" * 60)
        print(f"Server URL: {self.base_url}")
        print(f"WebSocket: ws://localhost:{self.port}/ws")
        print(f"API Docs: {self.base_url}/docs")
        print(f"Status: {self.base_url}/status")
        print("\nAvailable Commands:")
        print("   t - Run automated client scenario (Grace)")
        print("   g - Interactive client as Grace")
        print("   a - Interactive client as Alex")
        print("   s - Show system status")
        print("   h - Show this help")
        print("   q - Quit")
        print("=" * 60)

    def show_status(self):
        import requests
        try:
            data = requests.get(f"{self.base_url}/status", timeout=5).json()
        except requests.RequestException as e:
            print(f"Status check failed: {e}")
            return

        print("\nSystem Status:")
        for key in ("status", "active_connections", "total_connections", "database", "cache", "llm"):
            print(f"   {key}: {data.get(key)}")

    def interactive_menu(self):
        self.show_system_info()

        while self.running:
            try:
                command = input("\n> ").strip().lower()
            except (KeyboardInterrupt, EOFError):
                break

            if command == 'q':
                break
            elif command == 't':
                self.run_client(interactive=False)
            elif command == 'g':
                self.run_client(interactive=True, agent_id="grace")
            elif command == 'a':
                self.run_client(interactive=True, agent_id="alex")
            elif command == 's':
                self.show_status()
            elif command == 'h':
                self.show_system_info()
            else:
                print("Unknown command. Type 'h' for help.")

    def cleanup(self):
        logger.info("Cleaning up...")

        if self.server_process and self.server_process.poll() is None:
            self.server_process.terminate()
            try:
                self.server_process.wait(timeout=5)
                logger.info("Server stopped")
            except subprocess.TimeoutExpired:
                self.server_process.kill()
                logger.info("Server force killed")

    def run(self, mode="full"):
        try:
            if not self.check_dependencies():
                return False
            if not self.check_configuration():
                return False
            if not self.start_server():
                return False

            self.running = True
            time.sleep(2)
            self.test_server_health()

            if mode == "test_only":
                self.run_client(interactive=False)
            else:
                self.interactive_menu()
            return True

        except KeyboardInterrupt:
            logger.info("System stopped by user")
            return True
        finally:
            self.running = False
            self.cleanup()


def main():
    print("Family Companion Server Runner")
    print("=" * 50)

    mode = "full"
    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ["test", "test_only"]:
            mode = "test_only"
        elif arg == "help":
            print("\nUsage:")
            print("  python run.py        - Full interactive mode")
            print("  python run.py test   - Run the automated client scenario only")
            print("  python run.py help   - Show this help")
            return

    runner = SystemRunner()

    def signal_handler(signum, frame):
        logger.info("Received interrupt signal")
        runner.running = False
        runner.cleanup()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if runner.run(mode):
        print("\nSystem ran successfully")
    else:
        print("\nSystem encountered errors")
        sys.exit(1)


if __name__ == "__main__":
    main()
