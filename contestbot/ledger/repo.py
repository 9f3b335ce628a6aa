from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, func, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from contestbot.ledger.db import codes
from contestbot.observability.logging import log

ACTIVE = "active"
INACTIVE = "inactive"


class LedgerError(Exception):
    """The code ledger could not be read or written (distinct from 'no rows')."""


def _clean(v: Optional[str]) -> str:
    return v.strip() if v else "N/A"


class CodeLedger:
    """Parameterized reads/updates against the `codes` table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    # ------------------------------------------------------------------
    # Registration flow
    # ------------------------------------------------------------------
    def find_active_code(self, code: str) -> Optional[Dict[str, Any]]:
        stmt = select(codes.c.code, codes.c.code_id).where(
            and_(codes.c.status == ACTIVE, codes.c.code == code)
        )
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as e:
            raise LedgerError(f"active code lookup failed: {e}") from e
        return dict(row) if row else None

    def is_email_claimed(self, email: str) -> bool:
        """
        True when a completed registration already uses this email.
        Only inactive rows count: an in-progress email lives in the session only.
        """
        stmt = (
            select(codes.c.id)
            .where(and_(codes.c.status == INACTIVE, codes.c.email == email))
            .limit(1)
        )
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt).first() is not None
        except SQLAlchemyError as e:
            raise LedgerError(f"email lookup failed: {e}") from e

    def claim(self, code: str, *, name: str, email: str, city: str, phone: str) -> bool:
        """
        Bind an active code to one registrant.

        A single conditional UPDATE (status='active' in the WHERE clause) so two
        concurrent claims of the same code cannot both match. Returns False when
        no active row matched; storage failures raise LedgerError.
        """
        stmt = (
            update(codes)
            .where(and_(codes.c.code == code, codes.c.status == ACTIVE))
            .values(
                phone_number=phone,
                name=name,
                email=email,
                city=city,
                status=INACTIVE,
                created_at=func.now(),
            )
        )
        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
                updated = result.rowcount
        except SQLAlchemyError as e:
            log(event="code_claim_error", code=code, error=str(e)[:300])
            raise LedgerError(f"claim failed: {e}") from e

        log(event="code_claim_result", code=code, updated=int(updated))
        return updated == 1

    # ------------------------------------------------------------------
    # Admin reads/writes
    # ------------------------------------------------------------------
    def registration_stats(self) -> Dict[str, Any]:
        stmt = select(
            func.count(codes.c.id),
            func.min(codes.c.created_at),
            func.max(codes.c.created_at),
        ).where(codes.c.status == INACTIVE)
        try:
            with self.engine.connect() as conn:
                total, first, last = conn.execute(stmt).one()
        except SQLAlchemyError as e:
            raise LedgerError(f"stats query failed: {e}") from e

        total = int(total or 0)
        per_day = 0
        if first is not None and last is not None:
            days = math.ceil((last - first).total_seconds() / 86400) or 1
            per_day = round(total / days)

        return {
            "registrations": total,
            "codeScansPerDay": per_day,
            "winnersSelected": [
                {"name": w["name"], "phone": w["phone"], "city": w["city"]}
                for w in self.list_winners()
            ],
        }

    def list_winners(self) -> List[Dict[str, Any]]:
        stmt = (
            select(
                codes.c.code_id,
                codes.c.code,
                codes.c.name,
                codes.c.email,
                codes.c.phone_number,
                codes.c.city,
            )
            .where(and_(codes.c.status == INACTIVE, codes.c.is_winner.is_(True)))
            .order_by(codes.c.created_at.desc())
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            raise LedgerError(f"winners query failed: {e}") from e

        return [
            {
                "id": r["code_id"],
                "code": r["code"],
                "name": _clean(r["name"]),
                "email": r["email"],
                "phone": r["phone_number"] or "N/A",
                "city": r["city"] or "N/A",
            }
            for r in rows
        ]

    def recent_activity(self) -> List[Dict[str, Any]]:
        stmt = (
            select(
                codes.c.code_id,
                codes.c.name,
                codes.c.phone_number,
                codes.c.city,
                codes.c.email,
                codes.c.code,
                codes.c.created_at,
                codes.c.is_winner,
            )
            .where(
                and_(
                    codes.c.status == INACTIVE,
                    codes.c.name.is_not(None),
                    codes.c.phone_number.is_not(None),
                    codes.c.city.is_not(None),
                    codes.c.created_at.is_not(None),
                )
            )
            .order_by(codes.c.created_at.desc())
        )
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            raise LedgerError(f"recent activity query failed: {e}") from e

        return [
            {
                "id": r["code_id"],
                "name": _clean(r["name"]),
                "phone": r["phone_number"] or "N/A",
                "city": r["city"] or "N/A",
                "status": "Registered",
                "date": r["created_at"].date().isoformat() if r["created_at"] else "N/A",
                "email": r["email"] or "N/A",
                "code": r["code"] or "N/A",
                "isWinner": bool(r["is_winner"]),
            }
            for r in rows
        ]

    def set_winners(self, code_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Replace the winner set with the given claimed codes, atomically."""
        ids = [str(x) for x in code_ids]
        reset = update(codes).where(codes.c.status == INACTIVE).values(is_winner=False)
        mark = (
            update(codes)
            .where(and_(codes.c.code_id.in_(ids), codes.c.status == INACTIVE))
            .values(is_winner=True)
        )
        chosen = select(
            codes.c.code_id, codes.c.name, codes.c.phone_number, codes.c.city
        ).where(and_(codes.c.code_id.in_(ids), codes.c.status == INACTIVE))
        try:
            with self.engine.begin() as conn:
                conn.execute(reset)
                conn.execute(mark)
                rows = conn.execute(chosen).mappings().all()
        except SQLAlchemyError as e:
            raise LedgerError(f"winner update failed: {e}") from e

        log(event="winners_updated", requested=len(ids), updated=len(rows))
        return [
            {
                "id": r["code_id"],
                "name": _clean(r["name"]),
                "phone": r["phone_number"] or "N/A",
                "city": r["city"] or "N/A",
            }
            for r in rows
        ]
