"""Settings store: configurable point values per medal kind."""

import logging
from typing import Any, Dict, Mapping, Optional

from ..exceptions import ValidationError
from ..models import ScoreSettings
from ..storage import DatabaseInterface
from .notifications import LedgerNotifier

logger = logging.getLogger(__name__)

# JSON field name -> storage column
EDITABLE_FIELDS = {
    "goldPoints": "gold_points",
    "silverPoints": "silver_points",
    "bronzePoints": "bronze_points",
    "nonWinnerPoints": "non_winner_points",
}


class SettingsService:
    """Reads and updates the singleton ScoreSettings record."""

    def __init__(self, db: DatabaseInterface, notifier: Optional[LedgerNotifier] = None):
        self.db = db
        self.notifier = notifier

    def get_settings(self) -> ScoreSettings:
        return ScoreSettings(**self.db.get_score_settings())

    def update_settings(self, partial: Mapping[str, Any]) -> ScoreSettings:
        """
        Merge new point values into the settings.

        Args:
            partial: Point values keyed by JSON name (goldPoints) or
                     attribute name (gold_points). None values are ignored.

        Returns:
            The merged settings

        Raises:
            ValidationError: Unknown field, noEntryPoints, or a value that is
                             not a non-negative integer
        """
        columns = set(EDITABLE_FIELDS.values())
        values: Dict[str, int] = {}

        for key, value in partial.items():
            if key in ("noEntryPoints", "no_entry_points"):
                raise ValidationError("NO_ENTRY is always worth 0 points", field="noEntryPoints")
            column = EDITABLE_FIELDS.get(key, key)
            if column not in columns:
                raise ValidationError(f"Unknown setting: {key}", field=key)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(
                    f"{key} must be a non-negative integer",
                    field=key,
                    details={"value": value}
                )
            values[column] = value

        settings = ScoreSettings(**self.db.save_score_settings(values))
        if values:
            logger.info("Score settings updated: %s", values)
            if self.notifier:
                self.notifier.publish("settings", changed=sorted(values))
        return settings
