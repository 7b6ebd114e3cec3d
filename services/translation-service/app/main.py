from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Annotated, Literal
from uuid import uuid4

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.engine import Engine

from . import domain
from .db import get_engine, session
from .models import StringResource
from .persistence import NgxTranslateProvider, ResultItem
from .resources import INVARIANT_LOCALE, ResourceEntry, ResourceTable, storage_location_for
from .security import ROLE_ADMIN, ROLE_TRANSLATOR, require_roles

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Translation Resource Service",
    version="0.1.0",
    description="Dotted-key resource tables with ngx-translate JSON import/export.",
)

# Path value standing in for the invariant ("") locale in URLs.
INVARIANT_PATH_LOCALE = "_"


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


def _parse_key(name: str) -> domain.PathKey:
    try:
        return domain.PathKey.parse(name)
    except domain.InvalidKeyError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _provider(storage_location: str | None) -> NgxTranslateProvider:
    try:
        return NgxTranslateProvider(storage_location=storage_location)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


def _load_table(tenant_engine: Engine, project: str) -> ResourceTable:
    with session(tenant_engine) as s:
        rows = (
            s.query(StringResource)
            .filter(StringResource.project == project)
            .order_by(StringResource.position, StringResource.locale)
            .all()
        )
    table = ResourceTable()
    for r in rows:
        entry = table.get(r.name)
        if entry is None:
            entry = table.add(ResourceEntry(key=domain.PathKey.parse(r.name), storage_location=r.storage_location))
        entry.set_locale_text(r.locale, r.text)
    return table


# ----------------------------
# Schemas
# ----------------------------


class ProviderOut(BaseModel):
    name: str
    description: str
    storage_location_user_text: str
    storage_type: str
    storage_location: str
    base_directory: str


class ResourceIn(BaseModel):
    name: str
    # locale -> text; "" is the invariant locale
    texts: dict[str, str] = Field(default_factory=dict)


class ResourceOut(ResourceIn):
    storage_location: str
    complete: bool


class ImportRequest(BaseModel):
    project_locale: str
    storage_location: str | None = None


class ImportResult(BaseModel):
    stored: int
    discarded: int
    resources: list[ResourceOut]


class ExportRequest(BaseModel):
    project_locale: str
    # "" exports the invariant texts into <project_locale>.json
    locales: list[str] = Field(default_factory=lambda: [""])
    storage_location: str | None = None


class ExportResultItem(BaseModel):
    file_name: str
    project_name: str
    result: Literal["success", "error"]
    message: str | None = None


def _resource_out(entry: ResourceEntry) -> ResourceOut:
    return ResourceOut(
        name=entry.name,
        texts=dict(entry.texts),
        storage_location=entry.storage_location,
        complete=entry.is_complete,
    )


# ----------------------------
# Provider
# ----------------------------


@app.get("/provider", response_model=ProviderOut)
def get_provider(storage_location: str | None = None):
    p = _provider(storage_location)
    return ProviderOut(
        name=p.name,
        description=p.description,
        storage_location_user_text=p.storage_location_user_text,
        storage_type=p.storage_type,
        storage_location=p.storage_location,
        base_directory=p.base_directory(),
    )


# ----------------------------
# Resources
# ----------------------------


@app.get("/projects/{project}/resources", response_model=list[ResourceOut])
def list_resources(project: str, tenant_engine: Annotated[Engine, Depends(get_engine)]):
    return [_resource_out(e) for e in _load_table(tenant_engine, project)]


@app.put("/projects/{project}/resources", response_model=ResourceOut)
def upsert_resource(
    project: str,
    payload: ResourceIn,
    tenant_engine: Annotated[Engine, Depends(get_engine)],
    principal=Depends(require_roles(ROLE_ADMIN, ROLE_TRANSLATOR)),
):
    key = _parse_key(payload.name)
    if not payload.texts:
        raise HTTPException(status_code=422, detail="At least one locale text is required")
    name = str(key)
    now = _now()
    with session(tenant_engine) as s:
        existing = {
            r.locale: r
            for r in s.query(StringResource).filter(StringResource.project == project, StringResource.name == name).all()
        }
        if existing:
            position = next(iter(existing.values())).position
        else:
            position = (
                s.query(func.max(StringResource.position)).filter(StringResource.project == project).scalar() or 0
            ) + 1
        location = storage_location_for(project, key)

        for locale, text in payload.texts.items():
            row = existing.get(locale)
            if row is None:
                row = StringResource(
                    id=str(uuid4()),
                    project=project,
                    name=name,
                    locale=locale,
                    storage_location=location,
                    position=position,
                )
                existing[locale] = row
            row.text = text
            row.updated_at = now
            s.add(row)
        s.commit()

    entry = ResourceEntry(key=key, storage_location=location)
    for locale, row in existing.items():
        entry.set_locale_text(locale, row.text)
    return _resource_out(entry)


@app.delete("/projects/{project}/resources/{name}")
def delete_resource(
    project: str,
    name: str,
    tenant_engine: Annotated[Engine, Depends(get_engine)],
    principal=Depends(require_roles(ROLE_ADMIN, ROLE_TRANSLATOR)),
):
    with session(tenant_engine) as s:
        deleted = (
            s.query(StringResource)
            .filter(StringResource.project == project, StringResource.name == name)
            .delete(synchronize_session=False)
        )
        s.commit()
    if not deleted:
        raise HTTPException(status_code=404, detail="Resource not found")
    return {"status": "ok"}


@app.get("/projects/{project}/bundle/{locale}")
def get_bundle(project: str, locale: str, tenant_engine: Annotated[Engine, Depends(get_engine)]):
    """
    Nested ngx-translate document for one locale, built from the stored table.

    Use `_` for the invariant texts.
    """
    table = _load_table(tenant_engine, project)
    if not len(table):
        raise HTTPException(status_code=404, detail="Project not found")
    lookup = INVARIANT_LOCALE if locale == INVARIANT_PATH_LOCALE else locale
    tree = NgxTranslateProvider.build_locale_tree(table, lookup).build()
    return domain.to_json(tree)


# ----------------------------
# Import / export
# ----------------------------


@app.post("/projects/{project}/import", response_model=ImportResult)
def import_project(
    project: str,
    payload: ImportRequest,
    tenant_engine: Annotated[Engine, Depends(get_engine)],
    principal=Depends(require_roles(ROLE_ADMIN)),
):
    provider = _provider(payload.storage_location)
    try:
        table = provider.import_resource_strings(project, payload.project_locale)
    except ValueError as e:
        # ResourceFormatError / InvalidKeyError: the whole batch is rejected.
        raise HTTPException(status_code=422, detail=str(e))
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Import failed: {e}")

    kept = table.complete()
    discarded = table.incomplete()
    if discarded:
        logger.warning(
            "Import %s: discarding %d resource(s) without invariant text", project, len(discarded)
        )

    now = _now()
    with session(tenant_engine) as s:
        s.query(StringResource).filter(StringResource.project == project).delete(synchronize_session=False)
        for position, entry in enumerate(kept, start=1):
            for locale, text in entry.texts.items():
                s.add(
                    StringResource(
                        id=str(uuid4()),
                        updated_at=now,
                        project=project,
                        name=entry.name,
                        locale=locale,
                        text=text,
                        storage_location=entry.storage_location,
                        position=position,
                    )
                )
        s.commit()

    return ImportResult(stored=len(kept), discarded=len(discarded), resources=[_resource_out(e) for e in kept])


@app.post("/projects/{project}/export", response_model=list[ExportResultItem])
def export_project(
    project: str,
    payload: ExportRequest,
    tenant_engine: Annotated[Engine, Depends(get_engine)],
    principal=Depends(require_roles(ROLE_ADMIN)),
):
    table = _load_table(tenant_engine, project)
    if not len(table):
        raise HTTPException(status_code=404, detail="Project not found")

    provider = _provider(payload.storage_location)
    results: list[ResultItem] = provider.export_resource_strings(
        project_name=project,
        project_locale=payload.project_locale,
        locales_to_export=payload.locales,
        resources=table,
    )
    return [
        ExportResultItem(file_name=r.file_name, project_name=r.project_name, result=r.result, message=r.message)
        for r in results
    ]
