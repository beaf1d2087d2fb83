"""Tests for the sent email digest and Claude analysis."""

from datetime import datetime
from types import SimpleNamespace
from unittest.mock import Mock
from zoneinfo import ZoneInfo

from conftest import make_tools
from taskmate.controller.gmail import store_summaries
from taskmate.model.email_summary import EmailSummary
from taskmate.model.integration import Integration
from taskmate.service.email_analyzer import EmailAnalyzer, extract_json, fallback_analysis
from taskmate.service.gmail_service import GmailService, message_body, message_headers

NOW = datetime(2025, 11, 10, 12, 0, tzinfo=ZoneInfo("America/New_York"))

MESSAGES = {
    "m1": {"data": {
        "payload": {"headers": [
            {"name": "Subject", "value": "Internship offer"},
            {"name": "To", "value": "recruiter@example.com, hr@example.com"},
            {"name": "Date", "value": "Mon, 10 Nov 2025 09:00:00 -0500"},
        ]},
        "snippet": "Thank you for the offer, I am happy to accept.",
    }},
    "m2": {"data": {
        "headers": [{"name": "To", "value": "prof@university.edu"}],
        "messageText": "Could we move office hours?",
    }},
}


def get_message(arguments):
    return MESSAGES[arguments["messageId"]]


def claude_reply(text):
    client = Mock()
    client.messages.create.return_value = SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])
    return client


class TestEmailAnalyzer:
    """Test Claude analysis and its fallback."""

    def test_fallback_without_client(self):
        analysis = EmailAnalyzer(client=None, api_key="").analyze("Hi", "a@b.c", "x" * 200)
        assert analysis == {"summary": "x" * 150 + "...", "priority": "normal", "category": "Other"}

    def test_parses_json_reply(self):
        client = claude_reply('Sure:\n{"summary": "Accepts the offer.", "priority": "important", "category": "Career"}')
        analysis = EmailAnalyzer(client=client, model="claude-test").analyze("Offer", "hr@x.com", "body")

        assert analysis == {"summary": "Accepts the offer.", "priority": "important", "category": "Career"}
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-test"
        assert kwargs["max_tokens"] == 500
        assert "Subject: Offer" in kwargs["messages"][0]["content"]

    def test_rejects_unknown_values(self):
        client = claude_reply('{"summary": "ok", "priority": "urgent", "category": "Spam"}')
        analysis = EmailAnalyzer(client=client).analyze("s", "t", "body")

        assert analysis["summary"] == "ok"
        assert analysis["priority"] == "normal"
        assert analysis["category"] == "Other"

    def test_api_error_falls_back(self):
        client = Mock()
        client.messages.create.side_effect = RuntimeError("overloaded")

        assert EmailAnalyzer(client=client).analyze("s", "t", "short") == fallback_analysis("short")

    def test_reply_without_json(self):
        client = claude_reply("I cannot help with that.")
        assert EmailAnalyzer(client=client).analyze("s", "t", "b")["category"] == "Other"

    def test_extract_json(self):
        assert extract_json('prefix {"a": {"b": 1}} suffix') == {"a": {"b": 1}}
        assert extract_json("{not json}") is None
        assert extract_json(None) is None


class TestMessageParsing:
    """Test header and body extraction."""

    def test_headers_from_payload(self):
        headers = message_headers(MESSAGES["m1"]["data"])
        assert headers["Subject"] == "Internship offer"

    def test_body_sources(self):
        assert message_body({"body": {"data": "raw"}, "snippet": "s"}) == "raw"
        assert message_body({"snippet": "s"}) == "s"
        assert message_body({"body": {"textPlain": "plain"}}) == "plain"
        assert message_body({}) == ""


class TestGmailService:
    """Test the sent email digest."""

    def test_sent_digest(self, fake_composio, composio, analyzer):
        fake_composio.toolkits["GMAIL"] = make_tools("GMAIL_LIST_MESSAGES", "GMAIL_GET_MESSAGE")
        fake_composio.results["GMAIL_LIST_MESSAGES"] = {"data": {"messages": [{"id": "m1"}, {"messageId": "m2"}, {}]}}
        fake_composio.results["GMAIL_GET_MESSAGE"] = get_message

        emails, message = GmailService(composio, analyzer).sent_digest("user_1", now=NOW)

        assert message is None
        assert [email["id"] for email in emails] == ["m1", "m2"]
        offer, office_hours = emails
        assert offer["sender"] == "recruiter@example.com"
        assert offer["subject"] == "Internship offer"
        assert offer["timestamp"] == "3h ago"
        assert offer["priority"] == "normal"
        assert offer["summary"].startswith("Thank you for the offer")
        assert office_hours["subject"] == "No Subject"
        assert office_hours["timestamp"] == "Just now"
        list_args = fake_composio.executed("GMAIL_LIST_MESSAGES")[0][2]
        assert list_args == {"query": "in:sent", "maxResults": 10}
        assert fake_composio.executed("GMAIL_GET_MESSAGE")[0][2]["format"] == "full"

    def test_retries_with_list_messages(self, fake_composio, composio, analyzer):
        fake_composio.toolkits["GMAIL"] = make_tools("GMAIL_LIST_SENT_MESSAGES", "GMAIL_GET_MESSAGE")
        fake_composio.results["GMAIL_LIST_SENT_MESSAGES"] = RuntimeError("bad arguments")
        fake_composio.results["GMAIL_LIST_MESSAGES"] = {"messages": [{"id": "m1"}]}
        fake_composio.results["GMAIL_GET_MESSAGE"] = get_message

        emails, message = GmailService(composio, analyzer).sent_digest("user_1", now=NOW)

        assert message is None
        assert len(emails) == 1

    def test_both_list_calls_fail(self, fake_composio, composio, analyzer):
        fake_composio.toolkits["GMAIL"] = make_tools("GMAIL_LIST_MESSAGES")
        fake_composio.results["GMAIL_LIST_MESSAGES"] = RuntimeError("down")

        assert GmailService(composio, analyzer).sent_digest("user_1", now=NOW) == ([], "Could not fetch Gmail messages")

    def test_no_messages(self, fake_composio, composio, analyzer):
        fake_composio.toolkits["GMAIL"] = make_tools("GMAIL_LIST_MESSAGES")
        fake_composio.results["GMAIL_LIST_MESSAGES"] = {"data": {"messages": []}}

        assert GmailService(composio, analyzer).sent_digest("user_1", now=NOW) == ([], "No sent emails found")

    def test_failed_message_is_dropped(self, fake_composio, composio, analyzer):
        def flaky(arguments):
            if arguments["messageId"] == "m2":
                raise RuntimeError("not found")
            return get_message(arguments)

        fake_composio.toolkits["GMAIL"] = make_tools("GMAIL_LIST_MESSAGES", "GMAIL_GET_MESSAGE")
        fake_composio.results["GMAIL_LIST_MESSAGES"] = [{"id": "m1"}, {"id": "m2"}]
        fake_composio.results["GMAIL_GET_MESSAGE"] = flaky

        emails, _ = GmailService(composio, analyzer).sent_digest("user_1", now=NOW)

        assert [email["id"] for email in emails] == ["m1"]

    def test_repeated_ids_are_fetched_once(self, fake_composio, composio, analyzer):
        fake_composio.toolkits["GMAIL"] = make_tools("GMAIL_LIST_MESSAGES", "GMAIL_GET_MESSAGE")
        fake_composio.results["GMAIL_LIST_MESSAGES"] = {"data": {"messages": [{"id": "m1"}, {"id": "m2"}, {"id": "m1"}]}}
        fake_composio.results["GMAIL_GET_MESSAGE"] = get_message

        emails, _ = GmailService(composio, analyzer).sent_digest("user_1", now=NOW)

        assert [email["id"] for email in emails] == ["m1", "m2"]
        assert len(fake_composio.executed("GMAIL_GET_MESSAGE")) == 2

    def test_unexpected_error_drops_only_that_message(self, fake_composio, composio):
        def analyze(subject, to, body):
            if subject == "No Subject":
                raise KeyError("content")
            return fallback_analysis(body)

        fake_composio.toolkits["GMAIL"] = make_tools("GMAIL_LIST_MESSAGES", "GMAIL_GET_MESSAGE")
        fake_composio.results["GMAIL_LIST_MESSAGES"] = [{"id": "m1"}, {"id": "m2"}]
        fake_composio.results["GMAIL_GET_MESSAGE"] = get_message
        broken_analyzer = Mock()
        broken_analyzer.analyze.side_effect = analyze

        emails, message = GmailService(composio, broken_analyzer).sent_digest("user_1", now=NOW)

        assert message is None
        assert [email["id"] for email in emails] == ["m1"]

    def test_list_recipient_and_epoch_timestamp(self, fake_composio, composio, analyzer):
        fake_composio.toolkits["GMAIL"] = make_tools("GMAIL_LIST_MESSAGES", "GMAIL_GET_MESSAGE")
        fake_composio.results["GMAIL_LIST_MESSAGES"] = [{"id": "m4"}]
        fake_composio.results["GMAIL_GET_MESSAGE"] = {"data": {
            "subject": "Lab notes",
            "to": ["ta@university.edu", "me@university.edu"],
            "messageTimestamp": 1731254400000,
            "messageText": "Attached are the notes.",
        }}

        emails, _ = GmailService(composio, analyzer).sent_digest("user_1", now=NOW)

        assert emails[0]["sender"] == "ta@university.edu"
        assert emails[0]["timestamp"] == "11/10/2024"


class TestGmailEndpoints:
    """Test /api/gmail/emails and /api/gmail/summaries."""

    def test_emails_are_stored(self, client, auth_headers, fake_composio, db_session, user):
        fake_composio.toolkits["GMAIL"] = make_tools("GMAIL_LIST_MESSAGES", "GMAIL_GET_MESSAGE")
        fake_composio.results["GMAIL_LIST_MESSAGES"] = {"data": {"messages": [{"id": "m1"}]}}
        fake_composio.results["GMAIL_GET_MESSAGE"] = get_message

        body = client.get("/api/gmail/emails", headers=auth_headers).json()
        client.get("/api/gmail/emails", headers=auth_headers)

        assert body["success"] is True
        assert body["count"] == 1
        assert body["data"]["emails"][0]["subject"] == "Internship offer"
        rows = db_session.query(EmailSummary).filter(EmailSummary.user_id == user.user_id).all()
        assert len(rows) == 1
        assert rows[0].original_email_id == "m1"
        assert rows[0].sender == "recruiter@example.com"

        summaries = client.get("/api/gmail/summaries", headers=auth_headers).json()
        assert summaries["count"] == 1
        assert summaries["data"][0]["subject"] == "Internship offer"

    def test_repeated_ids_are_stored_once(self, client, auth_headers, fake_composio, db_session, user):
        fake_composio.toolkits["GMAIL"] = make_tools("GMAIL_LIST_MESSAGES", "GMAIL_GET_MESSAGE")
        fake_composio.results["GMAIL_LIST_MESSAGES"] = [{"id": "m1"}, {"id": "m2"}, {"id": "m1"}]
        fake_composio.results["GMAIL_GET_MESSAGE"] = get_message

        body = client.get("/api/gmail/emails", headers=auth_headers).json()

        assert [email["id"] for email in body["data"]["emails"]] == ["m1", "m2"]
        rows = db_session.query(EmailSummary).filter(EmailSummary.user_id == user.user_id).all()
        assert sorted(row.original_email_id for row in rows) == ["m1", "m2"]
        assert db_session.query(Integration).filter(Integration.service_name == "gmail").count() == 1

    def test_store_summaries_writes_repeated_id_once(self, db_session, user):
        email = {"id": "m1", "sender": "a@x.com", "subject": "s", "summary": "first",
                 "priority": "normal", "category": "Other", "receivedAt": None}

        store_summaries(db_session, user.user_id, [email, {**email, "summary": "second"}])

        rows = db_session.query(EmailSummary).all()
        assert len(rows) == 1
        assert rows[0].summary_text == "first"

    def test_message_when_tool_missing(self, client, auth_headers, fake_composio):
        fake_composio.toolkits["GMAIL"] = make_tools("GMAIL_SEND_EMAIL")

        body = client.get("/api/gmail/emails", headers=auth_headers).json()

        assert body["success"] is True
        assert body["data"]["emails"] == []
        assert body["msg"] == "Gmail list messages tool not found"
