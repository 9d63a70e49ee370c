import os
import subprocess
import sys
from unittest import mock

from django.conf import settings
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase

STARTUP_SCRIPT = """
import django
django.setup()
from rest_framework.settings import api_settings
api_settings.DEFAULT_AUTHENTICATION_CLASSES
api_settings.EXCEPTION_HANDLER
import config.urls
"""


class StartupTests(SimpleTestCase):
    """A fresh interpreter must be able to load the project."""

    def run_setup(self, settings_module):
        env = {**os.environ, "DJANGO_SETTINGS_MODULE": settings_module}
        return subprocess.run(
            [sys.executable, "-c", STARTUP_SCRIPT],
            cwd=settings.BASE_DIR,
            env=env,
            capture_output=True,
            text=True,
            timeout=120,
        )

    def test_django_setup_with_project_settings(self):
        result = self.run_setup("config.settings")
        self.assertEqual(result.returncode, 0, result.stderr)

    def test_django_setup_with_test_settings(self):
        result = self.run_setup("config.test_settings")
        self.assertEqual(result.returncode, 0, result.stderr)


class HealthTests(TestCase):
    def test_ok(self):
        response = self.client.get("/api/health/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_database_down(self):
        with mock.patch("common.views.connection") as connection:
            connection.cursor.side_effect = DatabaseError("down")
            response = self.client.get("/api/health/")
        self.assertEqual(response.status_code, 503)
