from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Optional
from taskmate.service.composio_service import ComposioService, ComposioError, dig, extract_list, field
from taskmate.service.email_analyzer import EmailAnalyzer
from taskmate.utils.helpers import local_now, parse_email_date, relative_timestamp
from taskmate.utils.logger import get_logger

logger = get_logger("gmail_service")

LIST_MESSAGE_TOOLS = ("GMAIL_LIST_MESSAGES", "GMAIL_LIST_SENT_MESSAGES")
GET_MESSAGE_TOOLS = ("GMAIL_GET_MESSAGE", "GMAIL_READ_MESSAGE")
FALLBACK_LIST_TOOL = "GMAIL_LIST_MESSAGES"

MAX_MESSAGES = 10
SENT_QUERY = "in:sent"


def message_headers(message: dict) -> dict:
    """
    Header name -> value, read from ``headers`` or ``payload.headers``.
    """
    headers = field(message, "headers") or dig(message, "payload.headers") or []
    values = {}
    for header in headers:
        name = field(header, "name")
        if name and name not in values:
            values[name] = field(header, "value", default="")
    return values


def message_id(stub) -> Optional[str]:
    return field(stub, "id", "messageId", "message_id")


def first_recipient(to) -> str:
    """First address of a To value given as a string or a list of addresses."""
    if isinstance(to, (list, tuple)):
        to = ", ".join(str(address) for address in to if address)
    return str(to or "Unknown").split(",")[0].strip() or "Unknown"


def message_body(message: dict) -> str:
    body = (
        dig(message, "body.data")
        or field(message, "snippet")
        or dig(message, "body.textPlain")
        or field(message, "messageText")
        or ""
    )
    return body if isinstance(body, str) else str(body)


class GmailService:
    """Recently sent Gmail messages with a Claude summary for each."""

    def __init__(self, composio: ComposioService, analyzer: EmailAnalyzer, max_workers: int = 5):
        self.composio = composio
        self.analyzer = analyzer
        self.max_workers = max_workers

    def list_sent(self, user_id: str) -> tuple[list, Optional[str]]:
        """
        Up to MAX_MESSAGES sent message stubs, or ([], message) when Gmail cannot be read.
        """
        tool = self.composio.discover_tool(
            user_id,
            "GMAIL",
            LIST_MESSAGE_TOOLS,
            (("list", "message"),),
            search="list sent messages",
        )
        if not tool:
            return [], "Gmail list messages tool not found"

        arguments = {"query": SENT_QUERY, "maxResults": MAX_MESSAGES}
        try:
            result = self.composio.execute(tool["name"], user_id, arguments)
        except ComposioError as e:
            logger.error(f"Error executing {tool['name']}: {e}")
            try:
                result = self.composio.execute(FALLBACK_LIST_TOOL, user_id, arguments)
            except ComposioError as alt_error:
                logger.error(f"Fallback Gmail fetch also failed: {alt_error}")
                return [], "Could not fetch Gmail messages"

        messages = extract_list(result, "data.messages", "messages", "", "data")
        if not messages:
            return [], "No sent emails found"

        # Composio can repeat a message; keep its first occurrence
        unique, seen = [], set()
        for stub in messages:
            stub_id = message_id(stub)
            if stub_id is not None:
                if stub_id in seen:
                    continue
                seen.add(stub_id)
            unique.append(stub)
        return unique[:MAX_MESSAGES], None

    def get_message_tool(self, user_id: str) -> Optional[dict]:
        return self.composio.discover_tool(
            user_id,
            "GMAIL",
            GET_MESSAGE_TOOLS,
            (("get", "message"),),
            search="get message",
            search_limit=20,
        )

    def summarize(self, user_id: str, stub: dict, tool_name: str, now: datetime) -> Optional[dict]:
        """
        Fetch one message and analyse it; None when it cannot be read or parsed.
        """
        stub_id = message_id(stub)
        if not stub_id:
            return None

        try:
            return self._summarize(user_id, stub_id, tool_name, now)
        except ComposioError as e:
            logger.error(f"Error processing email {stub_id}: {e}")
        except Exception as e:
            logger.error(f"Malformed email {stub_id} skipped: {e}", exc_info=True)
        return None

    def _summarize(self, user_id: str, stub_id: str, tool_name: str, now: datetime) -> Optional[dict]:
        result = self.composio.execute(tool_name, user_id, {"messageId": stub_id, "format": "full"})

        message = field(result, "data", "payload") or result
        if not isinstance(message, dict):
            return None

        headers = message_headers(message)
        subject = headers.get("Subject") or field(message, "subject", default="No Subject")
        to = headers.get("To") or field(message, "to", default="Unknown")
        sent_at = parse_email_date(headers.get("Date") or field(message, "messageTimestamp", "date"), now)
        body = message_body(message)

        analysis = self.analyzer.analyze(subject, to, body)

        return {
            "id": stub_id,
            "sender": first_recipient(to),
            "subject": str(subject),
            "summary": analysis["summary"],
            "timestamp": relative_timestamp(sent_at, now),
            "priority": analysis["priority"],
            "category": analysis["category"],
            "receivedAt": sent_at.isoformat(),
        }

    def sent_digest(self, user_id: str, now: Optional[datetime] = None) -> tuple[list[dict], Optional[str]]:
        """
        Summaries of the user's latest sent emails, in Gmail's order.

        Returns:
            (emails, message) where message explains an empty result
        """
        now = now or local_now()
        messages, message = self.list_sent(user_id)
        if message:
            return [], message

        tool = self.get_message_tool(user_id)
        if not tool:
            return [], "Gmail get message tool not found"

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            results = list(executor.map(
                lambda stub: self.summarize(user_id, stub, tool["name"], now),
                messages,
            ))

        return [email for email in results if email is not None], None
