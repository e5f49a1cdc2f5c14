import subprocess
import sys
import textwrap
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

import main
from config import Settings
from repositories.repository_users import MongoUserRepository

PROJECT_ROOT = Path(__file__).resolve().parent.parent


class TestBaseMongoLifespan(unittest.TestCase):
    def setUp(self):
        self.settings = Settings(MONGO_URI="mongodb://localhost:27017", MONGO_DB_NAME="users_test")
        self.client = MagicMock()

        self.mock_connect = AsyncMock(return_value=self.client)
        self.mock_ensure_indexes = AsyncMock()
        patchers = [
            patch.object(target=main, attribute="connect_to_mongo", new=self.mock_connect),
            patch.object(target=MongoUserRepository, attribute="ensure_indexes", new=self.mock_ensure_indexes),
            # the test client's loop must not get the process-ending handler
            patch.object(target=main, attribute="_fail_fast", new=MagicMock()),
        ]
        for patcher in patchers:
            self.addCleanup(patcher.stop)
            patcher.start()

        self.app = main.create_app(settings=self.settings)


class TestMongoLifespan(TestBaseMongoLifespan):
    def test_startup_sets_repository_and_shutdown_closes_client(self):
        with TestClient(self.app) as client:
            self.assertIsInstance(self.app.state.user_repository, MongoUserRepository)
            self.mock_connect.assert_awaited_once_with("mongodb://localhost:27017")
            self.mock_ensure_indexes.assert_awaited_once()
            self.client.close.assert_not_called()
            self.assertEqual(client.get("/health").json(), {"status": "ok"})

        self.client.close.assert_called_once()

    def test_unreachable_mongo_aborts_startup(self):
        self.mock_connect.side_effect = ServerSelectionTimeoutError("no servers")

        with self.assertRaises(ServerSelectionTimeoutError):
            with TestClient(self.app):
                pass

        self.assertFalse(hasattr(self.app.state, "user_repository"))
        self.mock_ensure_indexes.assert_not_awaited()


class TestFailFast(unittest.TestCase):
    def test_unretrieved_task_exception_ends_process(self):
        script = textwrap.dedent("""
            import asyncio
            import gc

            from main import _fail_fast


            async def boom():
                raise RuntimeError("background failure")


            async def run():
                asyncio.get_running_loop().set_exception_handler(_fail_fast)
                asyncio.ensure_future(boom())
                await asyncio.sleep(0.1)
                gc.collect()
                await asyncio.sleep(0.1)
                print("still running")


            asyncio.run(run())
        """)

        result = subprocess.run(
            [sys.executable, "-c", script],
            cwd=PROJECT_ROOT,
            capture_output=True,
            text=True,
            timeout=60,
        )

        self.assertEqual(result.returncode, 1)
        self.assertNotIn("still running", result.stdout)
        self.assertIn("Unhandled asynchronous failure", result.stderr)


if __name__ == "__main__":
    unittest.main()
