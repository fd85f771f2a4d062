"""Test environment defaults, applied before the application is imported."""

import os
import tempfile

os.environ["APP_ENV"] = "dev"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET"] = "test-secret-key-for-unit-tests-only"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["IMAGE_API_KEY"] = ""
os.environ["CORS_ORIGINS"] = ""
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="imagegen-uploads-"))
for name in ("BOOTSTRAP_ADMIN_USERNAME", "BOOTSTRAP_ADMIN_EMAIL", "BOOTSTRAP_ADMIN_PASSWORD"):
    os.environ.pop(name, None)
