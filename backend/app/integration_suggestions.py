"""
Integration Suggestions

Identifies well-known applications shown in a video (from visited URLs,
chunk names and the transcript) and suggests Make.com / Zapier
integrations that could replace the browser automation.

This is a static lookup table with keyword matching, not a classifier.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union
from urllib.parse import quote

from automation.chunks import Chunk

# Configure logging
logger = logging.getLogger(__name__)

URL_CONFIDENCE = 0.9
CHUNK_NAME_CONFIDENCE = 0.7
TRANSCRIPT_CONFIDENCE = 0.6


KNOWN_APPS: Dict[str, Dict[str, Any]] = {
    "google-sheets": {
        "name": "Google Sheets",
        "url_patterns": ["sheets.google.com", "docs.google.com/spreadsheets"],
        "keywords": ["Google Sheets", "spreadsheet", "sheet", "cell", "column", "row", "formula"],
        "make": [
            {
                "name": "Add a new row to Google Sheets",
                "description": "Creates a new row with your data in a specified Google Sheets spreadsheet",
                "url": "https://www.make.com/en/integrations/google-sheets",
                "complexity": "Simple"
            },
            {
                "name": "Watch for new rows in Google Sheets",
                "description": "Trigger actions when new data is added to your spreadsheet",
                "url": "https://www.make.com/en/integrations/google-sheets",
                "complexity": "Simple"
            }
        ],
        "zapier": [
            {
                "name": "Create Spreadsheet Row",
                "description": "Add a new row of data to a Google Sheets spreadsheet",
                "url": "https://zapier.com/apps/google-sheets/integrations",
                "complexity": "Simple"
            },
            {
                "name": "New Spreadsheet Row",
                "description": "Trigger when a new row is added to a Google Sheets spreadsheet",
                "url": "https://zapier.com/apps/google-sheets/integrations",
                "complexity": "Simple"
            }
        ]
    },
    "gmail": {
        "name": "Gmail",
        "url_patterns": ["mail.google.com", "gmail.com"],
        "keywords": ["Gmail", "email", "inbox", "compose", "message", "send email"],
        "make": [
            {
                "name": "Send email through Gmail",
                "description": "Automatically send emails through your Gmail account",
                "url": "https://www.make.com/en/integrations/gmail",
                "complexity": "Simple"
            }
        ],
        "zapier": [
            {
                "name": "Send Email",
                "description": "Send an email through your Gmail account",
                "url": "https://zapier.com/apps/gmail/integrations",
                "complexity": "Simple"
            }
        ]
    },
    "shopify": {
        "name": "Shopify",
        "url_patterns": ["myshopify.com", "shopify.com/admin"],
        "keywords": ["Shopify", "Products", "Orders", "Customers", "shopify admin", "e-commerce", "store"],
        "make": [
            {
                "name": "Create a product in Shopify",
                "description": "Add a new product to your Shopify store",
                "url": "https://www.make.com/en/integrations/shopify",
                "complexity": "Medium"
            }
        ],
        "zapier": [
            {
                "name": "Create Product",
                "description": "Create a new product in your Shopify store",
                "url": "https://zapier.com/apps/shopify/integrations",
                "complexity": "Medium"
            }
        ]
    },
    "airtable": {
        "name": "Airtable",
        "url_patterns": ["airtable.com"],
        "keywords": ["Airtable", "base", "record", "field", "table", "database", "view"],
        "make": [
            {
                "name": "Create a record in Airtable",
                "description": "Add a new record to an Airtable base",
                "url": "https://www.make.com/en/integrations/airtable",
                "complexity": "Simple"
            }
        ],
        "zapier": [
            {
                "name": "Create Record",
                "description": "Create a new record in Airtable",
                "url": "https://zapier.com/apps/airtable/integrations",
                "complexity": "Simple"
            }
        ]
    }
}


@dataclass
class AppMatch:
    """An application identified in the video"""
    app_id: str
    app_name: str
    confidence: float
    detection_method: str  # url, chunk_name, transcript
    matched_url: Optional[str] = None
    matched_chunk: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "appId": self.app_id,
            "appName": self.app_name,
            "confidence": self.confidence,
            "detectionMethod": self.detection_method,
        }
        if self.matched_url:
            data["matchedUrl"] = self.matched_url
        if self.matched_chunk:
            data["matchedChunk"] = self.matched_chunk
        return data


TranscriptInput = Union[None, str, List[Any]]


def _transcript_text(transcript: TranscriptInput) -> str:
    """Transcripts arrive as plain text or as a list of {text: ...} lines"""
    if isinstance(transcript, str):
        return transcript
    if isinstance(transcript, list):
        return " ".join(
            str(line.get("text")) for line in transcript
            if isinstance(line, Mapping) and line.get("text")
        )
    if transcript is not None:
        logger.warning(f"Ignoring transcript of unsupported type {type(transcript).__name__}")
    return ""


def _chunk_name(chunk: Union[Chunk, Mapping[str, Any]]) -> str:
    if isinstance(chunk, Chunk):
        return chunk.name
    return chunk.get("name") or ""


def _goto_urls(chunk: Union[Chunk, Mapping[str, Any]]) -> List[str]:
    if isinstance(chunk, Chunk):
        return [a.url for a in chunk.actions_for_replay() if a.type.value == "goto" and a.url]

    action = chunk.get("action")
    actions = action if isinstance(action, list) else [action]
    return [
        a["url"] for a in actions
        if isinstance(a, Mapping) and a.get("type") == "goto" and a.get("url")
    ]


def _matches_any(text: str, needles: Iterable[str]) -> bool:
    text = text.lower()
    return any(needle.lower() in text for needle in needles)


def identify_applications(
    visited_urls: Optional[List[str]] = None,
    chunks: Optional[List[Union[Chunk, Mapping[str, Any]]]] = None,
    transcript: TranscriptInput = None
) -> List[AppMatch]:
    """
    Match URLs, chunk names and transcript text against the known apps.

    Returns one match per app (its highest-confidence detection), sorted by
    confidence.
    """
    matches: List[AppMatch] = []

    for url in visited_urls or []:
        for app_id, app in KNOWN_APPS.items():
            if _matches_any(url, app["url_patterns"]):
                matches.append(AppMatch(
                    app_id=app_id,
                    app_name=app["name"],
                    confidence=URL_CONFIDENCE,
                    detection_method="url",
                    matched_url=url
                ))

    for chunk in chunks or []:
        name = _chunk_name(chunk)
        if not name:
            continue
        for app_id, app in KNOWN_APPS.items():
            if _matches_any(name, app["keywords"]):
                matches.append(AppMatch(
                    app_id=app_id,
                    app_name=app["name"],
                    confidence=CHUNK_NAME_CONFIDENCE,
                    detection_method="chunk_name",
                    matched_chunk=name
                ))

    text = _transcript_text(transcript)
    if text:
        for app_id, app in KNOWN_APPS.items():
            if _matches_any(text, app["keywords"]):
                matches.append(AppMatch(
                    app_id=app_id,
                    app_name=app["name"],
                    confidence=TRANSCRIPT_CONFIDENCE,
                    detection_method="transcript"
                ))

    # Keep the best detection per app; sort is stable so earlier sources win ties
    best: Dict[str, AppMatch] = {}
    for match in sorted(matches, key=lambda m: m.confidence, reverse=True):
        best.setdefault(match.app_id, match)
    return list(best.values())


def _service_link(service_name: str, entry: Mapping[str, Any]) -> Dict[str, str]:
    return {
        "serviceName": service_name,
        "integrationUrl": entry["url"],
        "description": entry["description"],
    }


def generate_integration_suggestions(apps: List[AppMatch]) -> List[Dict[str, Any]]:
    """One Make.com and one Zapier link per identified app"""
    suggestions = []
    for app in apps:
        known = KNOWN_APPS.get(app.app_id, {})
        make_entries = known.get("make") or []
        zapier_entries = known.get("zapier") or []
        query = quote(app.app_name)

        if make_entries:
            make = _service_link("Make.com", make_entries[0])
        else:
            make = {
                "serviceName": "Make.com",
                "integrationUrl": f"https://www.make.com/en/integrations?q={query}",
                "description": f"Replace manual {app.app_name} tasks with automated workflows",
            }

        if zapier_entries:
            zapier = _service_link("Zapier", zapier_entries[0])
        else:
            zapier = {
                "serviceName": "Zapier",
                "integrationUrl": f"https://zapier.com/apps?q={query}",
                "description": f"Connect {app.app_name} with thousands of other apps",
            }

        suggestions.append({
            "appId": app.app_id,
            "appName": app.app_name,
            "makeDotCom": make,
            "zapier": zapier,
        })
    return suggestions


def analyze_for_integrations(
    chunks: Optional[List[Union[Chunk, Mapping[str, Any]]]] = None,
    visited_urls: Optional[List[str]] = None,
    transcript: TranscriptInput = None
) -> Dict[str, Any]:
    """
    Identify apps and build suggestions.

    Without explicit visited URLs, the URLs of the chunks' goto actions are
    used.
    """
    if visited_urls is None:
        visited_urls = [url for chunk in chunks or [] for url in _goto_urls(chunk)]

    apps = identify_applications(visited_urls=visited_urls, chunks=chunks, transcript=transcript)
    if apps:
        logger.info(f"Identified {len(apps)} application(s): {', '.join(a.app_name for a in apps)}")

    return {
        "identifiedApps": [app.to_dict() for app in apps],
        "suggestions": generate_integration_suggestions(apps),
    }
