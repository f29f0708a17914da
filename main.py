from fastapi import Depends, FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from tune_finder.api.dependencies import get_config, get_library
from tune_finder.api.templates import router as templates_router
from tune_finder.config import AnalyzerConfig
from tune_finder.tools.template_library import TemplateLibrary

# Load environment variables from .env file
load_dotenv()

app = FastAPI(title="Tune Finder API")

# CORS for local development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(templates_router)

@app.get("/health")
async def health_check(library: TemplateLibrary = Depends(get_library)):
    return {"status": "healthy", "templates": len(library)}

@app.websocket("/ws/{session_id}")
async def websocket_route(
    websocket: WebSocket,
    session_id: str,
    library: TemplateLibrary = Depends(get_library),
    config: AnalyzerConfig = Depends(get_config),
):
    from tune_finder.api.websocket import websocket_endpoint
    await websocket_endpoint(websocket, session_id, library, config)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
