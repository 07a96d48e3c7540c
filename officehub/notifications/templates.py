"""
Email templates

Renders the HTML bodies for:
- Task assignment
- Issue converted to a task
- Daily digest
All share ``base_template`` (header, styles, footer).  Pure functions; every
value coming from the data store is HTML-escaped.
"""

from __future__ import annotations

import html
from datetime import date, datetime

from officehub.config import FRONTEND_URL
from officehub.notifications.models import DigestPayload
from officehub.utils.dates import format_long_date, format_short_date

BASE_TEMPLATE = """
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <style>
        body {{
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            line-height: 1.6;
            color: #333;
            max-width: 600px;
            margin: 0 auto;
            padding: 20px;
        }}
        .header {{
            background: linear-gradient(135deg, #2563eb 0%, #1d4ed8 100%);
            color: white;
            padding: 30px 20px;
            border-radius: 8px 8px 0 0;
            text-align: center;
        }}
        .header h1 {{
            margin: 0;
            font-size: 24px;
        }}
        .content {{
            background: #ffffff;
            padding: 30px 20px;
            border: 1px solid #e5e7eb;
            border-top: none;
        }}
        .card {{
            background: #f9fafb;
            padding: 20px;
            border-radius: 8px;
            margin: 20px 0;
            border-left: 4px solid #2563eb;
        }}
        .card h3 {{
            margin: 0 0 10px 0;
            color: #1f2937;
        }}
        .card p {{
            margin: 5px 0;
            color: #4b5563;
        }}
        .item {{
            margin: 10px 0;
            padding: 10px;
            background: white;
            border-radius: 4px;
        }}
        .button {{
            display: inline-block;
            background: #2563eb;
            color: white !important;
            padding: 12px 24px;
            text-decoration: none;
            border-radius: 6px;
            margin: 20px 0;
            font-weight: 500;
        }}
        .footer {{
            background: #f9fafb;
            padding: 20px;
            border-radius: 0 0 8px 8px;
            text-align: center;
            font-size: 12px;
            color: #6b7280;
            border: 1px solid #e5e7eb;
            border-top: none;
        }}
        .priority-badge {{
            display: inline-block;
            padding: 4px 12px;
            border-radius: 12px;
            font-size: 12px;
            font-weight: 600;
            text-transform: uppercase;
        }}
        .priority-low {{ background: #dbeafe; color: #1e40af; }}
        .priority-medium {{ background: #fef3c7; color: #92400e; }}
        .priority-high {{ background: #fed7aa; color: #9a3412; }}
        .priority-critical {{ background: #fecaca; color: #991b1b; }}
    </style>
</head>
<body>
    <div class="header">
        <h1>🏢 Modern Office System</h1>
    </div>
    <div class="content">
        {content}
    </div>
    <div class="footer">
        <p>Bu otomatik bir bildirimdir. Lütfen bu e-postayı yanıtlamayın.</p>
        <p>&copy; {year} Modern Office System. Tüm hakları saklıdır.</p>
    </div>
</body>
</html>
"""


def _e(value: object) -> str:
    return html.escape(str(value), quote=True)


def _badge(priority: str) -> str:
    css = "".join(ch for ch in priority.lower() if ch.isalnum() or ch == "-")
    return f'<span class="priority-badge priority-{css}">{_e(priority)}</span>'


def _link(path: str, label: str) -> str:
    return f'<a href="{_e(FRONTEND_URL + path)}" class="button">{label}</a>'


def base_template(content: str, year: int | None = None) -> str:
    """Wrap already-rendered ``content`` in the shared layout."""
    return BASE_TEMPLATE.format(content=content, year=year or datetime.now().year)


def task_assignment(
    *,
    recipient_name: str,
    task_title: str,
    task_description: str | None,
    priority: str,
    category: str,
    task_id: str,
    due_date: str | date | datetime | None = None,
) -> str:
    due_line = (
        f"<p><strong>Bitiş Tarihi:</strong> {format_long_date(due_date)}</p>" if due_date else ""
    )
    description = _e(task_description) if task_description else "Açıklama bulunmuyor."

    content = f"""
        <h2>Merhaba {_e(recipient_name)},</h2>
        <p>Size yeni bir görev atandı:</p>

        <div class="card">
            <h3>{_e(task_title)}</h3>
            <p>{_badge(priority)}</p>
            <p><strong>Kategori:</strong> {_e(category)}</p>
            {due_line}
            <p style="margin-top: 15px;"><strong>Açıklama:</strong></p>
            <p>{description}</p>
        </div>

        {_link('/tasks/' + task_id, 'Görevi Görüntüle')}

        <p style="margin-top: 20px; color: #6b7280;">
            Görevinizi tamamladığınızda lütfen durumunu güncelleyin.
        </p>
    """
    return base_template(content)


def issue_to_task(
    *,
    recipient_name: str,
    issue_title: str,
    issue_description: str,
    priority: str,
    reported_by: str,
    task_id: str,
) -> str:
    content = f"""
        <h2>Merhaba {_e(recipient_name)},</h2>
        <p>Bildirilen bir sorun size görev olarak atandı:</p>

        <div class="card">
            <h3>🔧 {_e(issue_title)}</h3>
            <p>{_badge(priority)}</p>
            <p><strong>Bildiren:</strong> {_e(reported_by)}</p>
            <p style="margin-top: 15px;"><strong>Sorun Detayı:</strong></p>
            <p>{_e(issue_description)}</p>
        </div>

        {_link('/tasks/' + task_id, 'Görevi Görüntüle ve Çözüme Başla')}

        <p style="margin-top: 20px; color: #6b7280;">
            Bu sorun çözüm gerektiriyor. Lütfen en kısa sürede ilgilenin.
        </p>
    """
    return base_template(content)


def _section(title: str, items: list[str], border_color: str | None = None) -> str:
    if not items:
        return ""
    style = f' style="border-left-color: {border_color};"' if border_color else ""
    return f"""
        <div class="card"{style}>
            <h3>{title} ({len(items)})</h3>
            {''.join(items)}
        </div>
    """


def daily_digest(payload: DigestPayload) -> str:
    overdue = _section(
        "⚠️ Gecikmiş Görevler",
        [
            f"""
            <div class="item">
                <p style="margin: 0;"><strong>{_e(task.title)}</strong></p>
                <p style="margin: 5px 0; font-size: 14px; color: #6b7280;">
                    {_badge(task.priority)}
                    Bitiş: {format_short_date(task.due_date) if task.due_date else '-'}
                </p>
            </div>
            """
            for task in payload.overdue_tasks
        ],
        border_color="#dc2626",
    )
    today = _section(
        "📅 Bugün Yapılacaklar",
        [
            f"""
            <div class="item">
                <p style="margin: 0;"><strong>{_e(task.title)}</strong></p>
                <p style="margin: 5px 0; font-size: 14px;">{_badge(task.priority)}</p>
            </div>
            """
            for task in payload.today_tasks
        ],
    )
    pending = _section(
        "🔔 Bekleyen Sorunlar",
        [
            f"""
            <div class="item">
                <p style="margin: 0;"><strong>{_e(issue.title)}</strong></p>
                <p style="margin: 5px 0; font-size: 14px; color: #6b7280;">
                    {_badge(issue.priority)}
                    Bildiren: {_e(issue.reported_by)}
                </p>
            </div>
            """
            for issue in payload.pending_issues
        ],
        border_color="#f59e0b",
    )

    all_clear = (
        ""
        if payload.has_content
        else """
        <div class="card">
            <h3>✅ Harika!</h3>
            <p>Şu anda bekleyen göreviniz veya sorun bulunmuyor.</p>
        </div>
        """
    )

    content = f"""
        <h2>Günaydın {_e(payload.recipient_name)},</h2>
        <p>İşte bugünün özeti:</p>

        {overdue}
        {today}
        {pending}
        {all_clear}

        {_link('/tasks', 'Tüm Görevleri Görüntüle')}

        <p style="margin-top: 20px; color: #6b7280;">
            Verimli bir gün geçirmeniz dileğiyle!
        </p>
    """
    return base_template(content)


def digest_subject(today: date | datetime) -> str:
    return f"📊 Günlük Özet - {format_long_date(today)}"


def task_assignment_subject(task_title: str, reassigned: bool = False) -> str:
    prefix = "Görev Atandı" if reassigned else "Yeni Görev"
    return f"📋 {prefix}: {task_title}"


def issue_to_task_subject(issue_title: str) -> str:
    return f"🔧 Yeni Sorun Görevi: {issue_title}"
