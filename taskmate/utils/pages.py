"""
Small standalone HTML pages shown in the popup window that finishes a Composio link.
"""
from html import escape
from fastapi.responses import HTMLResponse

SUCCESS_BACKGROUND = "linear-gradient(135deg, #667eea 0%, #764ba2 100%)"
ERROR_BACKGROUND = "#f5f5f5"

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <title>{title}</title>
  <style>
    body {{
      font-family: system-ui, sans-serif;
      display: flex;
      align-items: center;
      justify-content: center;
      min-height: 100vh;
      margin: 0;
      background: {background};
    }}
    .container {{
      text-align: center;
      padding: 40px;
      background: white;
      border-radius: 12px;
      box-shadow: 0 4px 12px rgba(0,0,0,0.1);
    }}
    h1 {{ color: {color}; margin: 0 0 16px 0; }}
    p {{ color: #666; margin: 0; }}
  </style>
</head>
<body>
  <div class="container">
    <h1>{icon} {heading}</h1>
    <p>{message}</p>
    {footer}
  </div>
</body>
</html>
"""

CLOSE_HINT = '<p style="margin-top: 20px; font-size: 14px;">You can close this window.</p>'


def success_page(title: str, heading: str) -> HTMLResponse:
    content = PAGE_TEMPLATE.format(
        title=escape(title),
        background=SUCCESS_BACKGROUND,
        color="#10b981",
        icon="&#9989;",
        heading=escape(heading),
        message="You can close this window and return to the app.",
        footer="",
    )
    return HTMLResponse(content=content)


def error_page(title: str, message: str, status_code: int = 200, close_hint: bool = True) -> HTMLResponse:
    content = PAGE_TEMPLATE.format(
        title=escape(title),
        background=ERROR_BACKGROUND,
        color="#dc2626",
        icon="&#10060;",
        heading=escape(title),
        message=escape(message),
        footer=CLOSE_HINT if close_hint else "",
    )
    return HTMLResponse(content=content, status_code=status_code)
