"""
DevDoc Backend — Project Search
=================================

What:  Two-tier search over a user's projects.
How:   Tier 1 ranks whole-word matches with field weights
       name (10) > description (5) > tags (3) > notes (1).
       Tier 2 runs only when tier 1 finds nothing: a case-insensitive
       substring match on the same four fields, newest update first.
Who:   Called by ProjectService.list_projects().

Tier 1 engines:
    PostgreSQL  weighted tsvector (setweight A/B/C/D) + ts_rank, matched
                against an OR query of the search words
    others      the same weighting computed in Python over the owner's
                projects (SQLite in tests and local development)

Both tiers filter on the owner inside the query, so another user's
project can never appear in a result set.
"""

import logging
import re
import uuid
from collections import Counter
from typing import Iterable, List, Sequence, Tuple

from sqlalchemy import Select, Text, cast, desc, func, literal_column, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.project import Project, as_utc

logger = logging.getLogger(__name__)

FIELD_WEIGHTS: Tuple[Tuple[str, int, str], ...] = (
    ("name", 10, "A"),
    ("description", 5, "B"),
    ("tags", 3, "C"),
    ("notes", 1, "D"),
)

_WORD_RE = re.compile(r"\w+", re.UNICODE)


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens of `text`."""
    return _WORD_RE.findall(text.lower()) if text else []


def field_text(project: Project, field: str) -> str:
    value = getattr(project, field)
    if field == "tags":
        return " ".join(value or [])
    return value or ""


def score_project(project: Project, terms: Iterable[str]) -> int:
    """Weighted count of whole-word occurrences of any term."""
    wanted = set(terms)
    score = 0
    for field, weight, _ in FIELD_WEIGHTS:
        counts = Counter(tokenize(field_text(project, field)))
        score += weight * sum(counts[t] for t in wanted)
    return score


def _weighted_vector():
    """setweight(to_tsvector(name),'A') || ... || setweight(to_tsvector(notes),'D')"""
    vector = None
    for field, _, label in FIELD_WEIGHTS:
        column = getattr(Project, field)
        source = cast(column, Text) if field == "tags" else func.coalesce(column, literal_column("''"))
        part = func.setweight(
            func.to_tsvector(literal_column("'english'"), source),
            literal_column(f"'{label}'"),
        )
        vector = part if vector is None else vector.op("||")(part)
    return vector


async def _ranked_postgres(db: AsyncSession, owner_id: uuid.UUID, terms: Sequence[str]) -> List[Project]:
    # Terms are \w+ tokens, so joining them with | yields a valid tsquery
    query = func.to_tsquery(literal_column("'english'"), " | ".join(terms))
    vector = _weighted_vector()
    rank = func.ts_rank(vector, query)
    stmt = (
        select(Project)
        .where(Project.user_id == owner_id, vector.op("@@")(query))
        .order_by(desc(rank), desc(Project.updated_at))
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def _ranked_portable(db: AsyncSession, owner_id: uuid.UUID, terms: Sequence[str]) -> List[Project]:
    result = await db.execute(select(Project).where(Project.user_id == owner_id))
    scored = [(score_project(p, terms), p) for p in result.scalars().all()]
    scored = [(s, p) for s, p in scored if s > 0]
    scored.sort(key=lambda sp: (sp[0], as_utc(sp[1].updated_at)), reverse=True)
    return [p for _, p in scored]


async def ranked_search(db: AsyncSession, owner_id: uuid.UUID, term: str) -> List[Project]:
    """Tier 1: relevance-ranked whole-word search."""
    terms = list(dict.fromkeys(tokenize(term)))
    if not terms:
        return []
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return await _ranked_postgres(db, owner_id, terms)
    return await _ranked_portable(db, owner_id, terms)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _tag_matches(dialect: str, pattern: str):
    """EXISTS over the elements of the tags array, so JSON syntax never matches."""
    if dialect == "postgresql":
        elements = func.json_array_elements_text(Project.tags).table_valued("value")
    else:
        elements = func.json_each(Project.tags).table_valued("value")
    return (
        select(literal_column("1"))
        .select_from(elements)
        .where(elements.c.value.ilike(pattern, escape="\\"))
        .exists()
    )


def substring_query(owner_id: uuid.UUID, term: str, dialect: str = "sqlite") -> Select:
    pattern = f"%{_escape_like(term)}%"
    return (
        select(Project)
        .where(
            Project.user_id == owner_id,
            or_(
                Project.name.ilike(pattern, escape="\\"),
                Project.description.ilike(pattern, escape="\\"),
                _tag_matches(dialect, pattern),
                Project.notes.ilike(pattern, escape="\\"),
            ),
        )
        .order_by(desc(Project.updated_at))
    )


async def substring_search(db: AsyncSession, owner_id: uuid.UUID, term: str) -> List[Project]:
    """Tier 2: unranked case-insensitive substring match."""
    dialect = db.get_bind().dialect.name
    result = await db.execute(substring_query(owner_id, term, dialect))
    return list(result.scalars().all())


async def search_projects(db: AsyncSession, owner_id: uuid.UUID, term: str) -> List[Project]:
    """Ranked search, falling back to substring matching when it finds nothing."""
    term = term.strip()
    results = await ranked_search(db, owner_id, term)
    if results:
        logger.debug("Ranked search for %r matched %d projects", term, len(results))
        return results
    results = await substring_search(db, owner_id, term)
    logger.debug("Substring fallback for %r matched %d projects", term, len(results))
    return results
