from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .config import DEFAULT_MONITOR_WEIGHT


@dataclass
class Monitor:
    """A monitor row owned by exactly one user."""
    id: int
    user_id: int
    name: str
    weight: int = DEFAULT_MONITOR_WEIGHT
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Monitor":
        row = dict(row)
        weight = row.pop('weight', None)
        return cls(
            id=row.pop('id'),
            user_id=row.pop('user_id'),
            name=row.pop('name'),
            weight=DEFAULT_MONITOR_WEIGHT if weight is None else weight,
            extra=row,
        )

    def to_json(self, include_sensitive_data: Optional[bool] = True) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'user_id': self.user_id,
            'name': self.name,
            'weight': self.weight,
            **self.extra,
        }
        if 'active' in data and data['active'] is not None:
            data['active'] = bool(data['active'])
        if not include_sensitive_data:
            for key in ('basic_auth_pass', 'auth_token', 'headers'):
                data.pop(key, None)
        return data
