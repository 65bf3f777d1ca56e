"""JSON rendering for plans, outcomes and table listings."""
import json  # pylint: disable=import-self,redefined-builtin
from typing import Any, Dict, List

from pgmig.models.migration import MigrationPlan, MigrationStatus, TableMigrationOutcome
from pgmig.models.schema import TableInfo

def plan_to_dict(plan: MigrationPlan) -> Dict[str, Any]:
    """Wire shape of a plan: each table's actions as SQL strings."""
    return {
        "plan": [
            {"tableName": t.table_name, "actions": [a.sql for a in t.actions]}
            for t in plan.tables
        ],
        "warnings": plan.warnings
    }

def outcomes_to_dict(outcomes: List[TableMigrationOutcome]) -> Dict[str, Any]:
    """Wire shape of a migration run."""
    return {
        "success": True,
        "results": [o.to_dict() for o in outcomes],
        "failed": sum(1 for o in outcomes if o.status == MigrationStatus.ERROR)
    }

def tables_to_dict(tables: List[TableInfo]) -> Dict[str, Any]:
    """Wire shape of a table listing."""
    return {"tables": [t.model_dump() for t in tables]}

def render_json(payload: Dict[str, Any]) -> str:
    """Render a wire-shaped payload as indented JSON."""
    return json.dumps(payload, indent=2, default=str)
