import os
import tempfile

# Settings are read at import time; pin a throwaway environment first
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AUTO_CREATE_TABLES", "false")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("UPLOAD_DIR", os.path.join(tempfile.gettempdir(), "animal_sos_test_uploads"))
os.environ.setdefault("SMTP_HOST", "")
os.environ.setdefault("LOG_LEVEL", "WARNING")
