import os

# Keep the module-level engine off PostgreSQL during tests.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
