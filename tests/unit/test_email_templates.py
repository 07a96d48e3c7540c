"""Unit tests for email templates"""

from __future__ import annotations

from datetime import date

from officehub.config import FRONTEND_URL
from officehub.notifications import templates
from officehub.notifications.models import DigestPayload
from officehub.storage.models import IssueSummary, TaskSummary


def test_base_template_wraps_content_with_footer_year():
    html = templates.base_template("<p>içerik</p>", year=2026)

    assert html.lstrip().startswith("<!DOCTYPE html>")
    assert "<p>içerik</p>" in html
    assert "&copy; 2026 Modern Office System" in html
    assert ".priority-critical" in html


def test_task_assignment_renders_details():
    html = templates.task_assignment(
        recipient_name="Ayşe",
        task_title="Bütçe raporu",
        task_description="Q3 rakamlarını ekle",
        priority="high",
        category="Finans",
        task_id="task-42",
        due_date="2026-10-21T17:00:00Z",
    )

    assert "Merhaba Ayşe," in html
    assert "Bütçe raporu" in html
    assert 'class="priority-badge priority-high"' in html
    assert "<strong>Kategori:</strong> Finans" in html
    assert "<strong>Bitiş Tarihi:</strong> 21 Ekim 2026" in html
    assert "Q3 rakamlarını ekle" in html
    assert f'href="{FRONTEND_URL}/tasks/task-42"' in html


def test_task_assignment_without_description_or_due_date():
    html = templates.task_assignment(
        recipient_name="Ayşe",
        task_title="Dosyalama",
        task_description=None,
        priority="low",
        category="Genel",
        task_id="task-1",
    )

    assert "Açıklama bulunmuyor." in html
    assert "Bitiş Tarihi" not in html


def test_task_assignment_escapes_user_content():
    html = templates.task_assignment(
        recipient_name="<b>Ali</b>",
        task_title="<script>alert(1)</script>",
        task_description='"quoted" & more',
        priority="medium",
        category="Genel",
        task_id="task-1",
    )

    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "&lt;b&gt;Ali&lt;/b&gt;" in html
    assert "&quot;quoted&quot; &amp; more" in html


def test_issue_to_task_renders_reporter_and_link():
    html = templates.issue_to_task(
        recipient_name="Mehmet",
        issue_title="Yazıcı bozuk",
        issue_description="Kağıt sıkışıyor",
        priority="critical",
        reported_by="Ayşe",
        task_id="task-7",
    )

    assert "🔧 Yazıcı bozuk" in html
    assert "<strong>Bildiren:</strong> Ayşe" in html
    assert "Kağıt sıkışıyor" in html
    assert f'href="{FRONTEND_URL}/tasks/task-7"' in html


def test_daily_digest_shows_only_non_empty_sections():
    payload = DigestPayload(
        recipient_name="Ayşe",
        overdue_tasks=[
            TaskSummary(id="t1", title="Fatura", priority="high", due_date="2026-10-17T09:00:00")
        ],
    )

    html = templates.daily_digest(payload)

    assert "Günaydın Ayşe," in html
    assert "⚠️ Gecikmiş Görevler (1)" in html
    assert "Bitiş: 17.10.2026" in html
    assert "Bugün Yapılacaklar" not in html
    assert "Bekleyen Sorunlar" not in html
    assert "Harika!" not in html
    assert f'href="{FRONTEND_URL}/tasks"' in html


def test_daily_digest_with_all_sections():
    payload = DigestPayload(
        recipient_name="Mehmet",
        today_tasks=[
            TaskSummary(id="t2", title="Toplantı", priority="critical"),
            TaskSummary(id="t3", title="E-posta", priority="low"),
        ],
        pending_issues=[IssueSummary(id="i1", title="Klima", priority="medium")],
    )

    html = templates.daily_digest(payload)

    assert "📅 Bugün Yapılacaklar (2)" in html
    assert "🔔 Bekleyen Sorunlar (1)" in html
    assert "Bildiren: Unknown" in html


def test_daily_digest_all_clear_card():
    html = templates.daily_digest(DigestPayload(recipient_name="Ayşe"))

    assert "✅ Harika!" in html
    assert "Gecikmiş Görevler" not in html


def test_digest_subject_uses_turkish_long_date():
    assert templates.digest_subject(date(2026, 10, 19)) == "📊 Günlük Özet - 19 Ekim 2026"
