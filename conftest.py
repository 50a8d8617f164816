from __future__ import annotations

import os

import django


os.environ.setdefault("DJANGO_SECRET_KEY", "test-secret")
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "weatherhub.settings")
os.environ.setdefault("WEATHERHUB_DATABASE_URL", "sqlite:///:memory:")

django.setup()
