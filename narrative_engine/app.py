import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI

from narrative_engine import config
from narrative_engine.demo import demo_world
from narrative_engine.engine import NarrativeEngine, build_engine
from narrative_engine.routes import router
from narrative_engine.world import World, load_world

load_dotenv(Path(__file__).parent.parent / ".env")

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

EngineFactory = Callable[[dict[str, Any]], NarrativeEngine]


def resolve_world(data_dir: Path, world_file: str) -> World:
    """The configured world file, else {data_dir}/world.json, else the demo forest."""
    if world_file:
        path = Path(world_file)
        return load_world(path if path.is_absolute() else data_dir / path)
    default = data_dir / "world.json"
    if default.is_file():
        return load_world(default)
    return demo_world()


def create_app(
    data_dir: Path | None = None,
    world: World | None = None,
    engine_factory: EngineFactory | None = None,
) -> FastAPI:
    resolved = data_dir or Path(os.getenv("DATA_DIR", str(DEFAULT_DATA_DIR)))
    config.init_config(resolved)
    settings = config.get_config()
    if world is None:
        world = resolve_world(resolved, settings["world_file"])
    if engine_factory is None:
        def engine_factory(cfg: dict[str, Any]) -> NarrativeEngine:
            return build_engine(cfg, world)

    app = FastAPI(title="Narrative Engine")
    app.state.world = world
    app.state.engine_factory = engine_factory
    app.state.engine = engine_factory(settings)
    app.include_router(router, prefix="/api")
    return app


# Default app instance for uvicorn (uses DATA_DIR env var or default)
app = create_app()
