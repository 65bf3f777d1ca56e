"""Markdown rendering for plans, outcomes and table listings."""
from typing import List

from pgmig.models.migration import MigrationPlan, MigrationStatus, TableMigrationOutcome
from pgmig.models.schema import TableInfo

def render_tables_markdown(tables: List[TableInfo]) -> str:
    """Render an analysis result as a Markdown table."""
    lines = [
        "# Source Tables",
        f"**Tables:** {len(tables)}",
        ""
    ]
    if not tables:
        lines.append("No matching tables found.")
        return "\n".join(lines)

    lines.append("| Table | Rows (approx.) | Size |")
    lines.append("|-------|----------------|------|")
    for table in tables:
        lines.append(f"| {table.name} | {table.rows} | {table.size} |")
    return "\n".join(lines)

def render_plan_markdown(plan: MigrationPlan) -> str:
    """Render a dry-run plan, warnings first."""
    lines = [
        "# Migration Plan (dry run)",
        f"**Tables:** {len(plan.tables)}",
        ""
    ]

    if plan.warnings:
        lines.append("### ⚠️ Warnings")
        for warning in plan.warnings:
            lines.append(f"- {warning}")
        lines.append("")

    if not plan.tables:
        lines.append("No matching tables found.")
        return "\n".join(lines)

    for table in plan.tables:
        if table.is_destructive:
            lines.append(f"## {table.table_name} (drop and recreate)")
        else:
            lines.append(f"## {table.table_name}")
        lines.append("```sql")
        for action in table.actions:
            lines.append(action.sql)
        lines.append("```")
        lines.append("")

    return "\n".join(lines)

def render_outcomes_markdown(outcomes: List[TableMigrationOutcome]) -> str:
    """Render a migration run as a Markdown report."""
    failed = [o for o in outcomes if o.status == MigrationStatus.ERROR]
    lines = [
        "# Migration Report",
        f"**Tables:** {len(outcomes)}",
        f"**Failed:** {len(failed)}",
        ""
    ]

    if not outcomes:
        lines.append("No tables were migrated.")
        return "\n".join(lines)

    lines.append("| Table | Status | Rows Copied | Error |")
    lines.append("|-------|--------|-------------|-------|")
    for outcome in outcomes:
        emoji = "🟢" if outcome.status == MigrationStatus.SUCCESS else "🔴"
        rows = "" if outcome.rows_copied is None else str(outcome.rows_copied)
        error = (outcome.error or "").replace("|", "\\|").replace("\n", " ")
        lines.append(f"| {outcome.table} | {emoji} {outcome.status.value} | {rows} | {error} |")
    return "\n".join(lines)
