from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from ..constants import AnalysisType
from ..errors import ConfigError, UnknownAnalysisType
from ..models import ChannelSnapshot, PromptTemplate
from .templating import TemplateVariables, render_template

DEFAULT_PROMPTS_DIR = Path(__file__).parent / "prompts"


class PromptStore:
    """Load versioned prompt templates from the manifest, one per analysis type."""

    def __init__(self, prompts_dir: Optional[Path] = None) -> None:
        self.prompts_dir = prompts_dir or DEFAULT_PROMPTS_DIR
        self.manifest = self._load_manifest()
        self._templates = self._load_templates()

    def _load_manifest(self) -> dict:
        manifest_path = self.prompts_dir / "manifest.json"
        if not manifest_path.exists():
            return {"schema_version": "1.0", "prompts": {}}
        return json.loads(manifest_path.read_text(encoding="utf-8"))

    def _load_templates(self) -> Dict[AnalysisType, PromptTemplate]:
        templates: Dict[AnalysisType, PromptTemplate] = {}
        for type_name, entry in (self.manifest.get("prompts") or {}).items():
            try:
                analysis_type = AnalysisType(type_name)
            except ValueError as exc:
                raise ConfigError(f"Prompt manifest lists unknown analysis type: {type_name}") from exc

            prompt_path = self.prompts_dir / entry["file"]
            if not prompt_path.exists():
                raise ConfigError(f"Prompt file missing: {prompt_path}")

            templates[analysis_type] = PromptTemplate(
                id=entry["id"],
                name=entry.get("name", entry["id"]),
                version=str(entry.get("version", "1.0")),
                analysis_type=analysis_type,
                template=prompt_path.read_text(encoding="utf-8").rstrip("\n"),
                variables=tuple(entry.get("variables") or ()),
                estimated_tokens=int(entry.get("estimated_tokens", 0)),
                is_active=bool(entry.get("is_active", True)),
            )
        return templates

    def get_template(self, analysis_type: Union[AnalysisType, str]) -> PromptTemplate:
        try:
            key = AnalysisType(analysis_type)
        except ValueError as exc:
            raise UnknownAnalysisType(f"Unknown analysis type: {analysis_type}") from exc

        template = self._templates.get(key)
        if template is None:
            raise UnknownAnalysisType(f"No prompt template for analysis type: {key.value}")
        return template

    def list_templates(self) -> List[PromptTemplate]:
        return list(self._templates.values())

    @staticmethod
    def render(template: PromptTemplate, variables: TemplateVariables) -> str:
        return render_template(template.template, variables)


def channel_variables(channel: ChannelSnapshot) -> Dict[str, Any]:
    """Build the prompt variable mapping for a channel snapshot."""
    variables: Dict[str, Any] = {
        "channelTitle": channel.title,
        "channelDescription": channel.description,
        "subscriberCount": f"{channel.subscriber_count:,}",
        "videoCount": f"{channel.video_count:,}",
        "viewCount": f"{channel.view_count:,}",
        "contentType": channel.content_type,
        "topics": ", ".join(channel.topics),
        "recentVideos": [
            {
                "title": video.title,
                "views": video.views,
                "likes": video.likes,
                "comments": video.comments,
                "publishedAt": video.published_at,
            }
            for video in channel.recent_videos or ()
        ],
    }
    if channel.published_at:
        variables["publishedAt"] = channel.published_at
    return variables
