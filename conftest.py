import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are read at import time; tests never reach a live Neo4j or Redis.
for key, value in {
    "NEO4J_URI": "bolt://localhost:7687",
    "NEO4J_USER": "neo4j",
    "NEO4J_PASSWORD": "test",
    "REDIS_URL": "redis://127.0.0.1:6379/0",
    "LIMITER_STORAGE_URI": "memory://",
    "RATE_LIMIT_ENABLED": "false",
}.items():
    os.environ.setdefault(key, value)
