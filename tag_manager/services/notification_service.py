"""Builds and sends alert and report emails."""

import html
import logging
from datetime import datetime, UTC

from ..clients.email_client import EmailSender
from ..models.alert import AlertRule, AlertViolation
from ..models.report import TagCoverageReport

logger = logging.getLogger(__name__)

FOOTER = "Generated by Azure Tag Manager | FinOps Team"


class NotificationService:
    """Renders violation and report emails and hands them to an EmailSender."""

    def __init__(self, email_sender: EmailSender):
        self.email_sender = email_sender

    @staticmethod
    def alert_subject(alert: AlertRule, is_test: bool = False) -> str:
        prefix = "[TEST] " if is_test else ""
        return f"{prefix}Azure Tag Compliance Alert: {alert.name}"

    def render_alert_text(
        self,
        alert: AlertRule,
        violations: list[AlertViolation],
        is_test: bool = False,
        now: datetime | None = None,
    ) -> str:
        now = now or datetime.now(UTC)
        lines = [
            f"{'[TEST] ' if is_test else ''}AZURE TAG COMPLIANCE ALERT",
            "",
            f"Alert: {alert.name}",
            f"Description: {alert.description or 'No description provided'}",
            f"Frequency: {alert.frequency.value}",
            f"Time: {now.strftime('%Y-%m-%d %H:%M:%S %Z')}",
            "",
            "SUMMARY",
            f"{len(violations)} compliance violations found",
            "",
            "VIOLATIONS FOUND:",
            "",
        ]
        for index, violation in enumerate(violations, start=1):
            lines.extend([
                f"{index}. {violation.resource_name}",
                f"   Reason: {violation.reason}",
                f"   Type: {violation.resource_type}",
                f"   Resource Group: {violation.resource_group}",
                f"   Location: {violation.location}",
                f"   Resource ID: {violation.resource_id}",
                "",
            ])
        if is_test:
            lines.append("NOTE: This is a test alert. No automated actions have been taken.")
        lines.extend(["", "---", FOOTER])
        return "\n".join(lines) + "\n"

    def render_alert_html(
        self,
        alert: AlertRule,
        violations: list[AlertViolation],
        is_test: bool = False,
        now: datetime | None = None,
    ) -> str:
        now = now or datetime.now(UTC)
        esc = html.escape
        badge = ' <span class="badge">TEST</span>' if is_test else ""

        items = "".join(
            f"""
            <div class="violation-item">
                <div class="resource-name">{esc(v.resource_name)}</div>
                <div class="reason">{esc(v.reason)}</div>
                <div class="metadata">Type: {esc(v.resource_type)} |
                    Resource Group: {esc(v.resource_group)} |
                    Location: {esc(v.location)}</div>
                <div class="metadata">Resource ID: {esc(v.resource_id)}</div>
            </div>"""
            for v in violations
        )
        test_note = (
            '<div class="note"><strong>This is a test alert.</strong> '
            "No automated actions have been taken.</div>"
            if is_test
            else ""
        )

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>Azure Tag Compliance Alert</title>
    <style>
        body {{ font-family: 'Segoe UI', Arial, sans-serif; color: #333; }}
        .header {{ background-color: #0078d4; color: white; padding: 20px; }}
        .badge {{ background-color: #ff6b35; color: white; padding: 4px 8px; font-size: 12px; }}
        .violation-item {{ border-bottom: 1px solid #e0e0e0; padding: 10px 0; }}
        .resource-name {{ font-weight: bold; color: #0078d4; }}
        .reason {{ color: #d13438; }}
        .metadata {{ font-size: 12px; color: #666; }}
        .note {{ background-color: #fff3cd; padding: 15px; margin-top: 20px; }}
    </style>
</head>
<body>
    <div class="header"><h1>Azure Tag Compliance Alert{badge}</h1></div>
    <h2>Alert: {esc(alert.name)}</h2>
    <p><strong>Description:</strong> {esc(alert.description or 'No description provided')}</p>
    <p><strong>Frequency:</strong> {alert.frequency.value}</p>
    <p><strong>Time:</strong> {now.strftime('%Y-%m-%d %H:%M:%S %Z')}</p>
    <p><strong>{len(violations)}</strong> compliance violations found</p>
    <div class="violations">{items}
    </div>
    {test_note}
    <p class="metadata">{FOOTER}</p>
</body>
</html>
"""

    async def send_violation_notification(
        self,
        alert: AlertRule,
        violations: list[AlertViolation],
        is_test: bool = False,
    ) -> bool:
        """
        Email an alert's violations to its recipients.

        Args:
            alert: Alert that produced the violations
            violations: Violations to report
            is_test: Mark the email as a test

        Returns:
            True if the email was sent, False if delivery was skipped

        Raises:
            EmailDeliveryError: If delivery was attempted and failed
        """
        now = datetime.now(UTC)
        sent = await self.email_sender.send(
            alert.recipients,
            self.alert_subject(alert, is_test),
            self.render_alert_text(alert, violations, is_test, now),
            self.render_alert_html(alert, violations, is_test, now),
        )
        if sent:
            logger.info(
                f"Alert email sent for '{alert.name}' ({alert.id}): "
                f"{len(violations)} violations, {len(alert.recipients)} recipients, test={is_test}"
            )
        return sent

    async def send_compliance_report(
        self,
        recipients: list[str],
        report: TagCoverageReport,
        report_type: str = "daily",
    ) -> bool:
        """
        Email a tag coverage summary.

        Returns:
            True if the email was sent, False if delivery was skipped
        """
        title = f"Azure Tag Compliance {report_type.capitalize()} Report"
        trend = "Good" if report.coverage_percentage > 85 else "Needs Improvement"
        top_keys = ", ".join(t.key for t in report.common_tags[:3]) or "none"

        text_body = "\n".join([
            title.upper(),
            "",
            "SUMMARY:",
            f"Total Resources: {report.total_resources}",
            f"Tagged Resources: {report.tagged_resources}",
            f"Coverage: {report.coverage_percentage}%",
            "",
            "KEY INSIGHTS:",
            f"- Resources requiring attention: {report.untagged_resources}",
            f"- Most common tags: {top_keys}",
            f"- Coverage trend: {trend}",
            "",
            "---",
            FOOTER,
        ]) + "\n"

        html_body = f"""<!DOCTYPE html>
<html>
<head><meta charset="utf-8"><title>{html.escape(title)}</title></head>
<body>
    <h1>{html.escape(title)}</h1>
    <p>Total Resources: <strong>{report.total_resources}</strong></p>
    <p>Tagged Resources: <strong>{report.tagged_resources}</strong></p>
    <p>Coverage: <strong>{report.coverage_percentage}%</strong></p>
    <ul>
        <li>Resources requiring attention: {report.untagged_resources}</li>
        <li>Most common tags: {html.escape(top_keys)}</li>
        <li>Coverage trend: {trend}</li>
    </ul>
    <p>{FOOTER}</p>
</body>
</html>
"""
        sent = await self.email_sender.send(recipients, title, text_body, html_body)
        if sent:
            logger.info(f"{title} sent to {len(recipients)} recipient(s)")
        return sent
