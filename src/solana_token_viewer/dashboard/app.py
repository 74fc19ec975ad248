"""Dashboard application factory."""

from __future__ import annotations

from html import escape
from typing import Dict, List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse

from ..datalake.schemas import EnrichedTokenRecord
from ..utils.formatting import record_fields
from .console import HEADING
from .state import DashboardState

HTML_TEMPLATE = """<!doctype html>
<html lang=\"en\">
<head>
  <meta charset=\"utf-8\" />
  <title>Solana Token Viewer</title>
  <style>
    body { font-family: Arial, sans-serif; margin: 0; padding: 0; background: #111; color: #f5f5f5; }
    header { padding: 16px 24px; background: #1f1f1f; box-shadow: 0 2px 8px rgba(0,0,0,0.5); }
    h1 { margin: 0; font-size: 24px; }
    main { padding: 24px; }
    section { background: #1a1a1a; border-radius: 12px; padding: 16px; margin-bottom: 16px; }
    dl { display: grid; grid-template-columns: max-content 1fr; gap: 4px 16px; margin: 0; }
    dt { color: #aaa; }
    dd { margin: 0; font-family: monospace; word-break: break-all; }
    .summary { font-size: 13px; color: #aaa; margin-top: 8px; }
  </style>
</head>
<body>
  <header>
    <h1>{heading}</h1>
    <div class=\"summary\">{summary}</div>
  </header>
  <main>
{blocks}
  </main>
</body>
</html>
"""


def _render_record(record: EnrichedTokenRecord) -> str:
    rows = "".join(
        f"<dt>{escape(label)}</dt><dd>{escape(value)}</dd>" for label, value in record_fields(record)
    )
    return f"    <section><dl>{rows}</dl></section>"


def render_html(state: DashboardState) -> str:
    summary = state.summary()
    summary_text = (
        f"{summary['records']} records from {summary['accounts_received']} accounts "
        f"for program {summary['program_id']}"
    )
    blocks: List[str] = [_render_record(record) for record in state.records]
    if not blocks:
        blocks.append("    <section><em>No token accounts found.</em></section>")
    # str.format would trip over the CSS braces.
    return (
        HTML_TEMPLATE.replace("{heading}", escape(HEADING))
        .replace("{summary}", escape(summary_text))
        .replace("{blocks}", "\n".join(blocks))
    )


def create_dashboard_app(state: DashboardState) -> FastAPI:
    app = FastAPI(title="Solana Token Viewer", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=state.config.dashboard.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/", response_class=HTMLResponse)
    async def index() -> str:
        return render_html(state)

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.get("/metrics", response_class=PlainTextResponse)
    async def prometheus_metrics() -> str:
        return state.metrics.export_prometheus()

    @app.get("/api/tokens")
    async def api_tokens() -> JSONResponse:
        return JSONResponse(state.tokens())

    @app.get("/api/summary")
    async def api_summary() -> JSONResponse:
        return JSONResponse(state.summary())

    return app


__all__ = ["create_dashboard_app", "render_html"]
