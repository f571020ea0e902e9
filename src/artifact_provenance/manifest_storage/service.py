"""
Manifest Storage Service

FastAPI application backing the ``database`` storage type. Manifest entries
live in a single SQLite table keyed by manifest id.
"""

import json
import logging
import os
import sqlite3
from contextlib import closing
from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException
import uvicorn

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS manifests (
    manifest_id TEXT PRIMARY KEY,
    manifest_type TEXT NOT NULL,
    manifest TEXT NOT NULL,
    created_at TEXT NOT NULL
)
"""


class ManifestDatabase:
    """Thin sqlite3 wrapper; one connection per operation."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        with closing(self._connect()) as conn, conn:
            conn.execute(SCHEMA)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @staticmethod
    def _entry(row: sqlite3.Row) -> Dict[str, Any]:
        return {
            "manifest_id": row["manifest_id"],
            "manifest_type": row["manifest_type"],
            "manifest": json.loads(row["manifest"]),
            "created_at": row["created_at"],
        }

    def upsert(self, manifest_id: str, manifest_type: str, manifest: Any) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(
                "INSERT OR REPLACE INTO manifests (manifest_id, manifest_type, manifest, created_at) "
                "VALUES (?, ?, ?, ?)",
                (manifest_id, manifest_type, json.dumps(manifest),
                 datetime.now(timezone.utc).isoformat()),
            )

    def get(self, manifest_id: str):
        with closing(self._connect()) as conn:
            row = conn.execute(
                "SELECT * FROM manifests WHERE manifest_id = ?", (manifest_id,)
            ).fetchone()
        return self._entry(row) if row else None

    def all(self) -> List[Dict[str, Any]]:
        with closing(self._connect()) as conn:
            rows = conn.execute("SELECT * FROM manifests ORDER BY created_at").fetchall()
        return [self._entry(row) for row in rows]

    def delete(self, manifest_id: str) -> bool:
        with closing(self._connect()) as conn, conn:
            cursor = conn.execute("DELETE FROM manifests WHERE manifest_id = ?", (manifest_id,))
        return cursor.rowcount > 0


def create_app(db_path: str = "manifests.db") -> FastAPI:
    """
    Build the storage service application.

    Args:
        db_path: SQLite database file

    Returns:
        FastAPI application
    """
    db = ManifestDatabase(db_path)
    app = FastAPI(
        title="AI Artifact Provenance - Manifest Storage",
        description="REST API for manifest storage and retrieval",
        version="1.0.0"
    )

    @app.get("/health")
    def health_check():
        return {"status": "healthy", "timestamp": datetime.now(timezone.utc).isoformat()}

    @app.post("/manifests/{manifest_id}", status_code=201)
    def store_manifest(manifest_id: str, payload: Dict[str, Any]):
        """Store or replace a manifest entry."""
        if "manifest" not in payload:
            raise HTTPException(status_code=400, detail="Request body must contain 'manifest'")
        manifest_type = payload.get("manifest_type") or "unknown"
        db.upsert(manifest_id, manifest_type, payload["manifest"])
        logger.info("Stored manifest %s (%s)", manifest_id, manifest_type)
        return {"manifest_id": manifest_id}

    @app.get("/manifests")
    def list_manifests():
        return db.all()

    @app.get("/manifests/{manifest_id}")
    def get_manifest(manifest_id: str):
        entry = db.get(manifest_id)
        if entry is None:
            raise HTTPException(status_code=404, detail=f"Manifest not found for ID: {manifest_id}")
        return entry

    @app.delete("/manifests/{manifest_id}")
    def delete_manifest(manifest_id: str):
        if not db.delete(manifest_id):
            raise HTTPException(status_code=404, detail="Manifest not found")
        return {"status": "deleted", "manifest_id": manifest_id}

    return app


def run_service() -> None:
    """Run the storage service, configured from the environment."""
    logging.basicConfig(level=logging.INFO)
    db_path = os.environ.get("MANIFEST_DB_PATH", "manifests.db")
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8080"))

    logger.info("Starting manifest storage service at http://%s:%d", host, port)
    uvicorn.run(create_app(db_path), host=host, port=port)


if __name__ == "__main__":
    run_service()
