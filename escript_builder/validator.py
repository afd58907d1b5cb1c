"""Application resource (``.app``) validation."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError

from escript_builder.errors import FatalManifestError
from escript_builder.logging import get_logger
from escript_builder.manifest.terms import Atom, consult_file
from escript_builder.types import AppResource

log = get_logger(__name__)

# --- Schema ---------------------------------------------------------------

SCHEMA_PACKAGE = "escript_builder.schema"
APP_SCHEMA = "app.schema.json"


@lru_cache(maxsize=1)
def _app_validator() -> Draft202012Validator:
    text = resources.files(SCHEMA_PACKAGE).joinpath(APP_SCHEMA).read_text(encoding="utf-8")
    return Draft202012Validator(json.loads(text))


# --- Term conversion --------------------------------------------------------


def _to_json(term: Any) -> Any:
    if isinstance(term, tuple | list):
        return [_to_json(t) for t in term]
    if isinstance(term, bytes):
        return term.decode("latin-1")
    if isinstance(term, Atom):
        return str(term)
    return term


def _is_atom(term: Any, name: str) -> bool:
    return isinstance(term, Atom) and term == name


def app_term_to_document(term: Any, source: str = "<app>") -> dict:
    """Turn ``{application, Name, [{Key, Value}, ...]}`` into a JSON document."""
    if not (isinstance(term, tuple) and len(term) == 3 and _is_atom(term[0], "application")):
        raise FatalManifestError(f"{source}: expected {{application, Name, Props}}")
    _, name, props = term
    if not isinstance(name, Atom):
        raise FatalManifestError(f"{source}: application name must be an atom")
    if not isinstance(props, list):
        raise FatalManifestError(f"{source}: application properties must be a list")

    doc: dict[str, Any] = {}
    for prop in props:
        if not (isinstance(prop, tuple) and len(prop) == 2 and isinstance(prop[0], Atom)):
            raise FatalManifestError(f"{source}: malformed application property {prop!r}")
        doc[str(prop[0])] = _to_json(prop[1])
    return {"kind": "application", "name": str(name), "properties": doc}


# --- Public validators ------------------------------------------------------


def validate_app_document(data: dict, source: str = "<app>") -> None:
    try:
        _app_validator().validate(data)
    except ValidationError as exc:
        where = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        raise FatalManifestError(f"{source}: {where}: {exc.message}") from exc


def load_app_resource(path: Path, app: str | None = None) -> AppResource:
    """Consult, validate and model the application resource file at *path*.

    When *app* is given, the resource must describe that application.
    """
    if not path.is_file():
        raise FatalManifestError(f"Missing application resource file: {path}")
    terms = consult_file(path)
    if len(terms) != 1:
        raise FatalManifestError(f"{path}: expected exactly one term, found {len(terms)}")

    doc = app_term_to_document(terms[0], source=str(path))
    validate_app_document(doc, source=str(path))
    if app is not None and doc["name"] != app:
        raise FatalManifestError(f"{path}: describes application {doc['name']!r}, expected {app!r}")

    props = doc["properties"]
    return AppResource(
        name=doc["name"],
        vsn=props["vsn"],
        description=props.get("description", ""),
        modules=props["modules"],
        registered=props.get("registered", []),
        applications=props.get("applications", []),
        env=props.get("env", []),
    )


def check_app_modules(resource: AppResource, ebin: Path) -> None:
    """Every listed module must have a beam in *ebin*; unlisted beams are only logged."""
    beams = {p.stem for p in ebin.glob("*.beam")}
    missing = sorted(set(resource.modules) - beams)
    if missing:
        raise FatalManifestError(
            f"Modules listed in {resource.name}.app have no beam in {ebin}: {', '.join(missing)}"
        )
    for extra in sorted(beams - set(resource.modules)):
        log.warning("beam %s.beam is not listed in %s.app", extra, resource.name)
