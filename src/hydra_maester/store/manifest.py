"""YAML manifest file store.

Resources live in a (multi-document) YAML file of ``OAuth2Client``
manifests; documents of other kinds are preserved untouched. Secrets are
written as ``v1/Secret`` manifests with base64-encoded ``data`` to a separate
file, which should never be committed.

Files are re-read on every operation so several processes can share them;
status writes are guarded by ``metadata.resourceVersion``.
"""

from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path
from typing import Any

import yaml

from hydra_maester.models import API_VERSION, KIND, OAuth2Client, ObjectMeta, ResourceKey, Secret
from hydra_maester.store.base import (
    AlreadyExistsError,
    ConflictError,
    ResourceNotFoundError,
    StoreError,
)

logger = logging.getLogger(__name__)


def _load_documents(path: Path) -> list[Any]:
    if not path.exists():
        return []
    try:
        docs = list(yaml.safe_load_all(path.read_text()))
    except yaml.YAMLError as e:
        raise StoreError(f"Invalid YAML in {path}: {e}") from e
    return [d for d in docs if d is not None]


def _dump_documents(path: Path, docs: list[Any]) -> None:
    path.write_text(yaml.safe_dump_all(docs, default_flow_style=False, sort_keys=False))


def _is_client(doc: Any) -> bool:
    return (
        isinstance(doc, dict)
        and doc.get("kind") == KIND
        and doc.get("apiVersion", API_VERSION) == API_VERSION
        and isinstance(doc.get("metadata"), dict)
    )


def _to_resource(doc: dict[str, Any]) -> OAuth2Client:
    metadata = {**doc["metadata"], "resourceVersion": None}
    resource = OAuth2Client.model_validate({**doc, "metadata": metadata})
    version = doc["metadata"].get("resourceVersion")
    resource.metadata.resource_version = str(version) if version is not None else None
    return resource


def _doc_key(doc: dict[str, Any], path: Path) -> ResourceKey:
    meta = doc["metadata"]
    if not meta.get("name"):
        raise StoreError(f"{doc.get('kind')} manifest without metadata.name in {path}")
    return ResourceKey(namespace=meta.get("namespace") or "default", name=str(meta["name"]))


class ManifestStore:
    """File-backed store of OAuth2Client manifests and their secrets."""

    def __init__(self, manifests_file: Path, secrets_file: Path):
        self._manifests_file = Path(manifests_file)
        self._secrets_file = Path(secrets_file)

    @property
    def manifests_file(self) -> Path:
        return self._manifests_file

    @property
    def secrets_file(self) -> Path:
        return self._secrets_file

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    def _find(self, docs: list[Any], key: ResourceKey) -> int | None:
        for i, doc in enumerate(docs):
            if _is_client(doc) and _doc_key(doc, self._manifests_file) == key:
                return i
        return None

    def _get(self, key: ResourceKey) -> OAuth2Client:
        docs = _load_documents(self._manifests_file)
        index = self._find(docs, key)
        if index is None:
            raise ResourceNotFoundError("OAuth2Client", key)
        return _to_resource(docs[index])

    def _list_keys(self) -> list[ResourceKey]:
        docs = _load_documents(self._manifests_file)
        keys = [_doc_key(doc, self._manifests_file) for doc in docs if _is_client(doc)]
        return sorted(set(keys), key=str)

    def _update_status(self, resource: OAuth2Client) -> OAuth2Client:
        key = resource.key
        docs = _load_documents(self._manifests_file)
        index = self._find(docs, key)
        if index is None:
            raise ResourceNotFoundError("OAuth2Client", key)

        doc = docs[index]
        stored_version = doc["metadata"].get("resourceVersion")
        if stored_version is not None:
            stored_version = str(stored_version)
        if resource.metadata.resource_version != stored_version:
            raise ConflictError(key, expected=resource.metadata.resource_version, actual=stored_version)

        try:
            next_version = str(int(stored_version or 0) + 1)
        except ValueError:
            raise StoreError(
                f"OAuth2Client {key} has non-numeric resourceVersion {stored_version!r} "
                f"in {self._manifests_file}"
            ) from None
        doc["metadata"]["resourceVersion"] = next_version
        doc["status"] = resource.status.model_dump(by_alias=True, exclude_none=True)
        _dump_documents(self._manifests_file, docs)
        logger.debug("Wrote status of %s to %s", key, self._manifests_file)

        return _to_resource(doc)

    async def get(self, key: ResourceKey) -> OAuth2Client:
        return await asyncio.to_thread(self._get, key)

    async def list_keys(self) -> list[ResourceKey]:
        return await asyncio.to_thread(self._list_keys)

    async def update_status(self, resource: OAuth2Client) -> OAuth2Client:
        return await asyncio.to_thread(self._update_status, resource)

    # -------------------------------------------------------------------------
    # Secrets
    # -------------------------------------------------------------------------

    def _find_secret(self, docs: list[Any], key: ResourceKey) -> dict[str, Any] | None:
        for doc in docs:
            if (
                isinstance(doc, dict)
                and doc.get("kind") == "Secret"
                and isinstance(doc.get("metadata"), dict)
                and _doc_key(doc, self._secrets_file) == key
            ):
                return doc
        return None

    def _write_secret(self, secret: Secret, replace: bool) -> None:
        docs = _load_documents(self._secrets_file)
        existing = self._find_secret(docs, secret.key)
        if existing is not None and not replace:
            raise AlreadyExistsError("Secret", secret.key)

        doc = {
            "apiVersion": secret.api_version,
            "kind": secret.kind,
            "metadata": {
                "name": secret.metadata.name,
                "namespace": secret.metadata.namespace,
            },
            "data": {
                k: base64.b64encode(v).decode("ascii") for k, v in secret.data.items()
            },
        }
        if existing is not None:
            docs[docs.index(existing)] = doc
        else:
            docs.append(doc)

        _dump_documents(self._secrets_file, docs)
        self._secrets_file.chmod(0o600)
        logger.debug("Wrote secret %s to %s", secret.key, self._secrets_file)

    def _get_secret(self, key: ResourceKey) -> Secret:
        doc = self._find_secret(_load_documents(self._secrets_file), key)
        if doc is None:
            raise ResourceNotFoundError("Secret", key)
        return Secret(
            metadata=ObjectMeta(name=key.name, namespace=key.namespace),
            data={k: base64.b64decode(v) for k, v in (doc.get("data") or {}).items()},
        )

    async def create_secret(self, secret: Secret) -> None:
        await asyncio.to_thread(self._write_secret, secret, False)

    async def replace_secret(self, secret: Secret) -> None:
        await asyncio.to_thread(self._write_secret, secret, True)

    async def get_secret(self, key: ResourceKey) -> Secret:
        return await asyncio.to_thread(self._get_secret, key)
