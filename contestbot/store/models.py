from dataclasses import dataclass, asdict
from typing import Dict, Optional

from contestbot.core.state_machine import is_known_step


@dataclass
class Session:
    """
    One in-progress registration, keyed by channel address.

    There is no "empty" Session: a store hash without a recognised `step`
    loads as None (no session) so callers never branch on blank strings.
    """
    address: str
    step: str
    name: Optional[str] = None
    email: Optional[str] = None
    city: Optional[str] = None
    code: Optional[str] = None

    @classmethod
    def from_fields(cls, address: str, fields: Dict[str, str]) -> Optional["Session"]:
        if not fields or not is_known_step(fields.get("step")):
            return None
        return cls(
            address=fields.get("address") or address,
            step=fields["step"],
            name=fields.get("name") or None,
            email=fields.get("email") or None,
            city=fields.get("city") or None,
            code=fields.get("code") or None,
        )

    def to_fields(self) -> Dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    def snapshot(self) -> Dict[str, str]:
        """Captured answers so far, as handed to the field extractor."""
        return self.to_fields()
