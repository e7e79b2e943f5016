"""
Training data export endpoint.
"""
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ppe_trainer.api.deps import get_exporter
from ppe_trainer.core.logging import logger
from ppe_trainer.services.export import TrainingDataExporter


router = APIRouter()


@router.get(
    "",
    status_code=status.HTTP_200_OK,
    summary="Export Training Data",
    description="Download folders, statistics, sessions and the model descriptor as one JSON file."
)
async def export_training_data(exporter: TrainingDataExporter = Depends(get_exporter)):
    payload = exporter.build_export()
    filename = exporter.export_filename()
    logger.info(f"Training data exported: {filename} ({payload['total_size']} chars of folder data)")

    return JSONResponse(
        content=payload,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
