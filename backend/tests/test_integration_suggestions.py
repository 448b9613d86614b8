"""
Unit tests for integration suggestions.
"""

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent / "app"))

from automation.actions import GotoAction
from automation.chunks import Chunk
from integration_suggestions import (
    AppMatch,
    analyze_for_integrations,
    generate_integration_suggestions,
    identify_applications,
)


class TestIdentifyApplications:
    """Test detection sources and confidences."""

    def test_nothing_to_analyze(self):
        assert identify_applications() == []

    def test_url_detection(self):
        """Test URL patterns give the highest confidence."""
        apps = identify_applications(visited_urls=["https://docs.google.com/spreadsheets/d/123"])

        assert len(apps) == 1
        assert apps[0].app_id == "google-sheets"
        assert apps[0].confidence == 0.9
        assert apps[0].detection_method == "url"

    def test_chunk_name_detection(self):
        """Test keyword match on chunk names."""
        apps = identify_applications(chunks=[{"name": "Checking Airtable records"}])

        assert [(a.app_id, a.confidence) for a in apps] == [("airtable", 0.7)]

    def test_transcript_lines(self):
        """Test transcripts given as a list of lines."""
        apps = identify_applications(transcript=[{"text": "Now I open my Shopify"}, {"text": "admin"}, "junk"])

        assert [(a.app_id, a.detection_method) for a in apps] == [("shopify", "transcript")]

    def test_deduplicated_by_highest_confidence(self):
        """Test one entry per app, keeping the best detection."""
        apps = identify_applications(
            visited_urls=["https://mail.google.com/mail/u/0"],
            chunks=[{"name": "Compose email"}],
            transcript="then I check my gmail inbox"
        )

        gmail = [a for a in apps if a.app_id == "gmail"]
        assert len(gmail) == 1
        assert gmail[0].confidence == 0.9
        assert apps == sorted(apps, key=lambda a: a.confidence, reverse=True)


class TestSuggestions:
    """Test suggestion building."""

    def test_known_app_links(self):
        """Test table entries are used for known apps."""
        suggestions = generate_integration_suggestions([
            AppMatch(app_id="gmail", app_name="Gmail", confidence=0.9, detection_method="url")
        ])

        assert suggestions[0]["makeDotCom"]["integrationUrl"] == "https://www.make.com/en/integrations/gmail"
        assert suggestions[0]["zapier"]["integrationUrl"] == "https://zapier.com/apps/gmail/integrations"

    def test_fallback_search_links(self):
        """Test apps without table entries get search links."""
        suggestions = generate_integration_suggestions([
            AppMatch(app_id="notion", app_name="Notion Docs", confidence=0.6, detection_method="transcript")
        ])

        assert suggestions[0]["makeDotCom"]["integrationUrl"] == "https://www.make.com/en/integrations?q=Notion%20Docs"
        assert suggestions[0]["zapier"]["integrationUrl"] == "https://zapier.com/apps?q=Notion%20Docs"

    def test_visited_urls_from_chunk_gotos(self):
        """Test goto actions count as visited URLs."""
        chunk = Chunk(
            id="chunk-1",
            order=1,
            start_time="0:00",
            end_time="0:15",
            name="Opening Website",
            action=GotoAction(url="https://airtable.com/base123")
        )

        result = analyze_for_integrations(chunks=[chunk])

        assert result["identifiedApps"][0]["appId"] == "airtable"
        assert result["identifiedApps"][0]["detectionMethod"] == "url"
        assert result["suggestions"][0]["appName"] == "Airtable"

    def test_wire_chunks(self):
        """Test chunks given as JSON objects."""
        result = analyze_for_integrations(chunks=[
            {"name": "Step", "action": [{"type": "goto", "url": "https://mystore.myshopify.com/admin"}]}
        ])

        assert [a["appId"] for a in result["identifiedApps"]] == ["shopify"]

    @pytest.mark.parametrize("transcript", [None, "", 42])
    def test_empty_or_odd_transcripts(self, transcript):
        assert analyze_for_integrations(transcript=transcript) == {"identifiedApps": [], "suggestions": []}
