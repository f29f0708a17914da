from typing import List

from fastapi import APIRouter, Depends, HTTPException

from tune_finder.api.dependencies import get_config, get_library
from tune_finder.config import AnalyzerConfig
from tune_finder.models.melody import Template, TemplateInfo
from tune_finder.tools.template_library import TemplateLibrary

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("", response_model=List[TemplateInfo])
async def list_templates(
    library: TemplateLibrary = Depends(get_library),
    config: AnalyzerConfig = Depends(get_config),
):
    """Names and lengths of the loaded reference melodies."""
    return library.describe(config.interval_ms)


@router.get("/{name}", response_model=Template)
async def get_template(name: str, library: TemplateLibrary = Depends(get_library)):
    if name not in library:
        raise HTTPException(status_code=404, detail=f"Unknown template: {name}")
    return library.get(name)
