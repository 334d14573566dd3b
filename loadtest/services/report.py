# loadtest/services/report.py
from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List

from loadtest.services.runner import RunResult


@dataclass
class RunSummary:
    url: str
    stages: List[Dict[str, Any]]
    iterations: int
    max_vus: int
    total_seconds: float
    iterations_per_s: float
    status_counts: Dict[str, int]
    trend_name: str
    trend_ms: Dict[str, float]
    checks: Dict[str, Dict[str, float]]
    error_samples: List[Dict[str, Any]]
    timestamp_utc: str


def build_summary(result: RunResult) -> RunSummary:
    total = result.total_seconds
    return RunSummary(
        url=result.url,
        stages=result.stages,
        iterations=result.iterations,
        max_vus=result.max_vus,
        total_seconds=total,
        iterations_per_s=(result.iterations / total) if total > 0 else 0.0,
        status_counts=dict(result.status_counts),
        trend_name=result.trend.name,
        trend_ms=result.trend.summary(),
        checks=result.checks.summary(),
        error_samples=[asdict(es) for es in result.error_samples],
        timestamp_utc=result.timestamp_utc,
    )


def render_md(obj: Dict[str, Any]) -> str:
    tr = obj.get("trend_ms", {})
    md = []
    md.append("# Load Test Summary")
    md.append(f"- URL: `{obj.get('url')}`")
    md.append(f"- Stages: `{json.dumps(obj.get('stages'))}`")
    md.append(f"- Iterations: **{obj.get('iterations')}**")
    md.append(f"- Max VUs: **{obj.get('max_vus')}**")
    md.append(f"- Total time: **{obj.get('total_seconds'):.2f}s**")
    md.append(f"- Iterations/s: **{obj.get('iterations_per_s'):.2f}**")
    md.append("")
    md.append(f"## Trend `{obj.get('trend_name')}` (sending + receiving)")
    for k in ("count", "min", "avg", "med", "p90", "p95", "p99", "max"):
        v = tr.get(k, 0)
        md.append(f"- {k}: {v}" if k == "count" else f"- {k}: {v:.3f} ms")
    md.append("")
    md.append("## Checks")
    checks = obj.get("checks", {})
    if not checks:
        md.append("- (none recorded)")
    for name, c in checks.items():
        md.append(f"- {name}: {c['passes']} passed / {c['fails']} failed ({c['rate']:.2%})")
    md.append("")
    md.append("## Status counts")
    md.append("```json")
    md.append(json.dumps(obj.get("status_counts", {}), indent=2))
    md.append("```")
    if obj.get("error_samples"):
        md.append("")
        md.append(f"## Error samples (first {len(obj['error_samples'])})")
        md.append("```json")
        md.append(json.dumps(obj["error_samples"], indent=2)[:8000])
        md.append("```")
    return "\n".join(md) + "\n"


def write_outputs(summary: RunSummary, out_dir: Path) -> Dict[str, Path]:
    out_dir.mkdir(parents=True, exist_ok=True)
    obj = asdict(summary)
    json_path = out_dir / "load_summary.json"
    md_path = out_dir / "load_summary.md"
    json_path.write_text(json.dumps(obj, indent=2), encoding="utf-8")
    md_path.write_text(render_md(obj), encoding="utf-8")
    return {"json": json_path, "md": md_path}
