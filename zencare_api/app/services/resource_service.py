"""
Self-help resource hub.

Anyone may browse active resources.  Listing filters on type, language,
category and difficulty and can narrow further with a search over
title, description and tags.  The dedicated search additionally looks
at the body text and ranks hits by relevance.  Opening a resource
counts a view, which drives the "popular" list.  Only the admin adds or
edits resources; deactivated ones disappear from every public list.
"""

import json
import logging
import math
import sqlite3
from typing import Any, Dict, List, Optional

from zencare_api.app.core.db import get_connection, load_json, utc_now
from zencare_api.app.schemas.resource import (
    ResourceCategory,
    ResourceCreate,
    ResourceList,
    ResourceRead,
    ResourceUpdate,
)

logger = logging.getLogger(__name__)

CATEGORIES = [
    ResourceCategory(
        id="anxiety",
        name="Anxiety Management",
        description="Resources for managing anxiety and panic",
        icon="mind",
        color="#E6E6FA",
    ),
    ResourceCategory(
        id="depression",
        name="Depression Support",
        description="Resources for understanding and coping with depression",
        icon="heart",
        color="#DDA0DD",
    ),
    ResourceCategory(
        id="stress",
        name="Stress Relief",
        description="Techniques and tools for stress management",
        icon="leaf",
        color="#B19CD9",
    ),
    ResourceCategory(
        id="mindfulness",
        name="Mindfulness & Meditation",
        description="Mindfulness practices and meditation guides",
        icon="lotus",
        color="#C8A2C8",
    ),
    ResourceCategory(
        id="relationships",
        name="Relationships",
        description="Building healthy relationships and communication",
        icon="people",
        color="#DDBDDD",
    ),
    ResourceCategory(
        id="self-care",
        name="Self-Care",
        description="Self-care practices and wellness routines",
        icon="spa",
        color="#E6D7E6",
    ),
    ResourceCategory(
        id="crisis",
        name="Crisis Support",
        description="Emergency resources and crisis intervention",
        icon="shield",
        color="#F0E6F0",
    ),
    ResourceCategory(
        id="games",
        name="Wellness Games",
        description="Interactive games for mood improvement",
        icon="game",
        color="#E6E6FA",
    ),
]

FEATURED_LIMIT = 10

# (column, weight) pairs scored by the ranked search
_RELEVANCE_WEIGHTS = (("title", 10), ("description", 5), ("tags", 3), ("content", 2))


def _like(term: str) -> str:
    escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _matches(text: Optional[str], term: str) -> bool:
    return bool(text) and term in text.lower()


def relevance(row: sqlite3.Row, term: str) -> float:
    """Weighted sum of the fields containing ``term``, nudged up by popularity."""
    term = term.lower()
    score = 0.0
    for column, weight in _RELEVANCE_WEIGHTS:
        if column == "tags":
            hit = any(term in tag.lower() for tag in load_json(row["tags"], []))
        else:
            hit = _matches(row[column], term)
        if hit:
            score += weight
    return round(score + math.log(1 + (row["view_count"] or 0)) * 0.1, 3)


def _row_to_resource(row: sqlite3.Row, score: Optional[float] = None) -> ResourceRead:
    return ResourceRead(
        id=row["id"],
        title=row["title"],
        description=row["description"],
        content=row["content"],
        type=row["type"],
        language=row["language"],
        category=row["category"],
        difficulty=row["difficulty"],
        url=row["url"],
        thumbnail_url=row["thumbnail_url"],
        duration=row["duration"],
        tags=load_json(row["tags"], []),
        rating=row["rating"] or 0,
        view_count=row["view_count"] or 0,
        is_active=bool(row["is_active"]),
        is_featured=bool(row["is_featured"]),
        relevance=score,
        created_at=row["created_at"],
    )


def _filters(**equals: Optional[str]) -> tuple:
    clauses, params = ["is_active = 1"], []
    for column, value in equals.items():
        if value:
            clauses.append(f"{column} = ?")
            params.append(value)
    return clauses, params


class ResourceService:

    @staticmethod
    def categories() -> List[ResourceCategory]:
        return list(CATEGORIES)

    @classmethod
    async def list_resources(
        cls,
        type: Optional[str] = None,
        language: Optional[str] = None,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
    ) -> ResourceList:
        """Active resources, newest first, filtered by every argument given."""
        clauses, params = _filters(type=type, language=language, category=category, difficulty=difficulty)
        if search:
            clauses.append(
                "(lower(title) LIKE ? ESCAPE '\\' OR lower(coalesce(description, '')) LIKE ? ESCAPE '\\'"
                " OR lower(coalesce(tags, '')) LIKE ? ESCAPE '\\')"
            )
            params.extend([_like(search)] * 3)
        where = " AND ".join(clauses)
        conn = get_connection()
        try:
            total = conn.execute(f"SELECT COUNT(*) FROM resources WHERE {where}", tuple(params)).fetchone()[0]
            rows = conn.execute(
                f"SELECT * FROM resources WHERE {where} ORDER BY created_at DESC, id DESC LIMIT ?",
                (*params, limit),
            ).fetchall()
        finally:
            conn.close()
        return ResourceList(resources=[_row_to_resource(row) for row in rows], total=total)

    @classmethod
    async def search(
        cls, term: str, language: Optional[str] = None, type: Optional[str] = None, limit: int = 20
    ) -> ResourceList:
        """Ranked search over title, description, tags and body text."""
        clauses, params = _filters(language=language, type=type)
        clauses.append(
            "(lower(title) LIKE ? ESCAPE '\\' OR lower(coalesce(description, '')) LIKE ? ESCAPE '\\'"
            " OR lower(coalesce(tags, '')) LIKE ? ESCAPE '\\' OR lower(coalesce(content, '')) LIKE ? ESCAPE '\\')"
        )
        params.extend([_like(term)] * 4)
        conn = get_connection()
        try:
            rows = conn.execute(f"SELECT * FROM resources WHERE {' AND '.join(clauses)}", tuple(params)).fetchall()
        finally:
            conn.close()
        ranked = sorted(((relevance(row, term), row) for row in rows), key=lambda pair: (-pair[0], pair[1]["id"]))
        # LIKE over the tags column also matches JSON punctuation, drop rows with no real hit
        ranked = [(score, row) for score, row in ranked if score >= 1]
        return ResourceList(
            resources=[_row_to_resource(row, score) for score, row in ranked[:limit]],
            total=len(ranked),
        )

    @classmethod
    async def featured(cls) -> List[ResourceRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                """
                SELECT * FROM resources WHERE is_active = 1 AND is_featured = 1
                ORDER BY featured_order IS NULL, featured_order ASC, id ASC LIMIT ?
                """,
                (FEATURED_LIMIT,),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_resource(row) for row in rows]

    @classmethod
    async def popular(cls, limit: int = 10) -> List[ResourceRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                "SELECT * FROM resources WHERE is_active = 1 ORDER BY view_count DESC, id ASC LIMIT ?", (limit,)
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_resource(row) for row in rows]

    @classmethod
    async def get_resource(cls, resource_id: int) -> ResourceRead:
        """Open an active resource and count the view."""
        conn = get_connection()
        try:
            cursor = conn.execute(
                "UPDATE resources SET view_count = view_count + 1, last_viewed_at = ? WHERE id = ? AND is_active = 1",
                (utc_now(), resource_id),
            )
            if cursor.rowcount == 0:
                raise ValueError(f"Resource {resource_id} not found")
            conn.commit()
            row = conn.execute("SELECT * FROM resources WHERE id = ?", (resource_id,)).fetchone()
        finally:
            conn.close()
        logger.debug("Resource %s opened, %s views", resource_id, row["view_count"])
        return _row_to_resource(row)

    @classmethod
    async def create(cls, admin_id: int, data: ResourceCreate) -> ResourceRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO resources (
                    title, description, content, type, language, category, difficulty, url,
                    thumbnail_url, duration, tags, is_featured, featured_order, created_by
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    data.title,
                    data.description,
                    data.content,
                    data.type,
                    data.language,
                    data.category,
                    data.difficulty,
                    data.url,
                    data.thumbnail_url,
                    data.duration,
                    json.dumps(data.tags, ensure_ascii=False),
                    int(data.is_featured),
                    data.featured_order,
                    admin_id,
                ),
            )
            resource_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute("SELECT * FROM resources WHERE id = ?", (resource_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Resource %s '%s' added by %s", resource_id, data.title, admin_id)
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=admin_id,
            action="create",
            object_type="resource",
            object_id=resource_id,
            details={"category": data.category, "type": data.type},
        )
        return _row_to_resource(row)

    @classmethod
    async def update(cls, admin_id: int, resource_id: int, update: ResourceUpdate) -> ResourceRead:
        """Apply the fields that were sent; inactive resources can be edited and re-activated."""
        fields: Dict[str, Any] = {
            key: value for key, value in update.model_dump(exclude_unset=True).items() if value is not None
        }
        if "tags" in fields:
            fields["tags"] = json.dumps(fields["tags"], ensure_ascii=False)
        for key in ("is_active", "is_featured"):
            if key in fields:
                fields[key] = int(fields[key])
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT 1 FROM resources WHERE id = ?", (resource_id,)).fetchone():
                raise ValueError(f"Resource {resource_id} not found")
            if fields:
                assignments = ", ".join(f"{column} = ?" for column in fields)
                cursor.execute(
                    f"UPDATE resources SET {assignments}, updated_at = ? WHERE id = ?",
                    (*fields.values(), utc_now(), resource_id),
                )
                conn.commit()
            row = cursor.execute("SELECT * FROM resources WHERE id = ?", (resource_id,)).fetchone()
        finally:
            conn.close()
        logger.info("Resource %s updated by %s: %s", resource_id, admin_id, sorted(fields))
        from zencare_api.app.services.audit_service import AuditService
        await AuditService.log(
            user_id=admin_id,
            action="update",
            object_type="resource",
            object_id=resource_id,
            details={"fields": sorted(fields)},
        )
        return _row_to_resource(row)
