"""
Catalog domain models for Hubs Backup.

This module contains typed data classes representing the records returned
by the remote catalog API (projects, scenes, avatars, rooms and media).
Every record keeps the raw JSON mapping it was built from so that it can
be written back to disk verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Optional, TypeVar


T = TypeVar("T")


@dataclass(frozen=True)
class Scene:
    """A published scene with its model and screenshot."""

    scene_id: str
    name: str
    model_url: Optional[str] = None
    screenshot_url: Optional[str] = None
    scene_project_url: Optional[str] = None
    project_id: Optional[str] = None
    parent_scene_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scene":
        return cls(
            scene_id=data["scene_id"],
            name=data.get("name", ""),
            model_url=data.get("model_url"),
            screenshot_url=data.get("screenshot_url"),
            scene_project_url=data.get("scene_project_url"),
            project_id=data.get("project_id"),
            parent_scene_id=data.get("parent_scene_id"),
            raw=data,
        )


@dataclass(frozen=True)
class Project:
    """A project summary, as returned by the project listing."""

    project_id: str
    name: str
    project_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Project":
        return cls(
            project_id=data["project_id"],
            name=data.get("name", ""),
            project_url=data.get("project_url"),
            thumbnail_url=data.get("thumbnail_url"),
            raw=data,
        )


@dataclass(frozen=True)
class ProjectScene:
    """A project with its published scene (or the scene it was remixed from) resolved."""

    project_id: Optional[str] = None
    scene: Optional[Scene] = None
    parent_scene: Optional[Scene] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def resolved_scene(self) -> Optional[Scene]:
        return self.scene or self.parent_scene

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectScene":
        scene = data.get("scene")
        parent_scene = data.get("parent_scene")
        return cls(
            project_id=data.get("project_id"),
            scene=Scene.from_dict(scene) if scene else None,
            parent_scene=Scene.from_dict(parent_scene) if parent_scene else None,
            raw=data,
        )


@dataclass(frozen=True)
class AvatarListing:
    """Avatar summary entry from the media search listing."""

    id: str
    name: str = ""
    url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AvatarListing":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            url=data.get("url"),
            raw=data,
        )


@dataclass(frozen=True)
class AvatarFiles:
    """Downloadable files attached to an avatar."""

    base_map: Optional[str] = None
    emissive_map: Optional[str] = None
    normal_map: Optional[str] = None
    orm_map: Optional[str] = None
    bin: Optional[str] = None
    gltf: Optional[str] = None
    thumbnail: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "AvatarFiles":
        data = data or {}
        return cls(
            base_map=data.get("base_map"),
            emissive_map=data.get("emissive_map"),
            normal_map=data.get("normal_map"),
            orm_map=data.get("orm_map"),
            bin=data.get("bin"),
            gltf=data.get("gltf"),
            thumbnail=data.get("thumbnail"),
        )


@dataclass(frozen=True)
class Avatar:
    """A fully populated avatar record."""

    avatar_id: str
    name: str
    files: AvatarFiles
    gltf_url: Optional[str] = None
    base_gltf_url: Optional[str] = None
    parent_avatar_listing_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Avatar":
        return cls(
            avatar_id=data["avatar_id"],
            name=data.get("name", ""),
            files=AvatarFiles.from_dict(data.get("files")),
            gltf_url=data.get("gltf_url"),
            base_gltf_url=data.get("base_gltf_url"),
            parent_avatar_listing_id=data.get("parent_avatar_listing_id"),
            raw=data,
        )


@dataclass(frozen=True)
class Hub:
    """A room (hub) created by the account."""

    id: str
    name: str = ""
    url: Optional[str] = None
    scene_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Hub":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            url=data.get("url"),
            scene_id=data.get("scene_id"),
            raw=data,
        )


@dataclass(frozen=True)
class MediaAsset:
    """An uploaded media asset (image, video, audio or model)."""

    id: str
    url: str
    name: str = ""
    type: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MediaAsset":
        return cls(
            id=data["id"],
            url=data["url"],
            name=data.get("name", ""),
            type=data.get("type"),
            raw=data,
        )


@dataclass
class CatalogPage(Generic[T]):
    """One page of a cursor-paginated listing."""

    entries: List[T]
    next_cursor: Optional[str] = None

    @property
    def is_last(self) -> bool:
        return not self.next_cursor


__all__ = [
    "Scene",
    "Project",
    "ProjectScene",
    "AvatarListing",
    "AvatarFiles",
    "Avatar",
    "Hub",
    "MediaAsset",
    "CatalogPage",
]
