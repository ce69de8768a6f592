"""
File Resources Example

Serves the resources declared in ./resources (*.resource.json and
*.resource.yaml) over HTTP.
Hooks are referenced as "module:function" strings (see hooks.py).

Run: python examples/02-file-resources/main.py

Then:
    curl -X POST localhost:8000/widgets -d '{"name": "left"}'
    curl localhost:8000/widgets
    curl localhost:8000/devices/1
"""

import sys
from pathlib import Path

import uvicorn

from rested import register_backend, register_schemas
from rested.app.main import configure_logging, create_app
from rested.backends import MemoryBackend
from rested.config import AppSettings
from rested.runtime import FileResourceLoader

HERE = Path(__file__).parent

# Make hooks.py importable for the "hooks:..." references
sys.path.insert(0, str(HERE))

settings = AppSettings(service_name="file-resources", log_level="debug")

# A class is used as a factory: each declaration gets its own store
register_backend("memory", MemoryBackend)
register_schemas({
    "widgets": {
        "type": "object",
        "properties": {"name": {"type": "string"}, "created_at": {"type": "string"}},
        "required": ["name"],
    }
})

app = create_app(settings, FileResourceLoader(HERE / "resources", settings=settings))


if __name__ == "__main__":
    configure_logging(settings)
    uvicorn.run(app, host="127.0.0.1", port=8000)
