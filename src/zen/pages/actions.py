"""Load action modules from the actions directory.

An actions module is a plain Python file; every function it defines
becomes a handler::

    # actions/books.py
    async def _(ctx, data):          # z-init="books"
        data["books"] = await Book.read_all()
        ctx.render()

    def add(ctx, data):              # POST /@/books?add
        ...

Imported helpers are not exported: only functions whose ``__module__``
is the loaded module count.
"""

import importlib.util
import inspect
import re
from pathlib import Path
from types import MappingProxyType, ModuleType

from zen.pages.types import ActionsModule

_UNSAFE = re.compile(r"[^0-9A-Za-z_]")


def module_identifier(name: str, generation: int | None = None) -> str:
    """Import name for an actions file.

    ``generation`` is appended in live mode so a reload never reuses a
    stale module object.
    """
    ident = "zen_actions." + ".".join(_UNSAFE.sub("_", part) for part in name.split("/"))
    if generation is not None:
        ident = f"{ident}__{generation}"
    return ident


def load_actions_module(path: Path, name: str, *, generation: int | None = None) -> ActionsModule:
    """Execute *path* and collect its handlers.

    Import errors propagate. The live route table logs them and treats
    the module as missing; the cached table fails at startup.
    """
    spec = importlib.util.spec_from_file_location(module_identifier(name, generation), path)
    if spec is None or spec.loader is None:
        msg = f"Cannot load actions module {name!r} from {path}"
        raise ImportError(msg)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return ActionsModule(name=name, path=str(path), handlers=MappingProxyType(_handlers(module)))


def _handlers(module: ModuleType) -> dict[str, object]:
    return {
        attr: obj
        for attr, obj in vars(module).items()
        if inspect.isfunction(obj) and obj.__module__ == module.__name__
    }


def action_path(actions_root: Path, name: str) -> Path | None:
    """File for module *name*, or ``None`` if the name is not routable."""
    parts = [p for p in name.split("/") if p]
    if not parts or any(p in (".", "..") or p.startswith(("_", ".")) for p in parts):
        return None
    path = actions_root.joinpath(*parts[:-1], f"{parts[-1]}.py")
    if not path.resolve().is_relative_to(actions_root.resolve()):
        return None
    return path
