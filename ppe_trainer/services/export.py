"""
Downloadable JSON snapshot of all training data.
"""
import json
from datetime import datetime
from typing import Any, Dict, Optional

from ppe_trainer.models.schemas.common import utcnow
from ppe_trainer.services.training_folders import TrainingFolderStore
from ppe_trainer.services.training_images import TrainingImageRepository
from ppe_trainer.services.training_sessions import TrainingSessionLedger

EXPORT_VERSION = "2.0"


class TrainingDataExporter:
    def __init__(self, folders: TrainingFolderStore, repository: TrainingImageRepository,
                 ledger: TrainingSessionLedger):
        self.folders = folders
        self.repository = repository
        self.ledger = ledger

    def build_export(self) -> Dict[str, Any]:
        """
        Collect folders, stats, sessions and the model descriptor.

        ``total_size`` is the length in characters of the serialized folders.
        """
        folders = [f.model_dump(mode="json") for f in self.folders.get_all_folders()]

        return {
            "folders": folders,
            "image_stats": self.repository.stats().model_dump(mode="json"),
            "sessions": [s.model_dump(mode="json") for s in self.ledger.get_sessions()],
            "model": self.ledger.current_model().model_dump(mode="json"),
            "ledger_stats": self.ledger.stats().model_dump(mode="json"),
            "export_date": utcnow().isoformat(),
            "version": EXPORT_VERSION,
            "total_size": len(json.dumps(folders)),
        }

    @staticmethod
    def export_filename(now: Optional[datetime] = None) -> str:
        now = now or utcnow()
        return f"training_data_{now:%Y-%m-%d}.json"
