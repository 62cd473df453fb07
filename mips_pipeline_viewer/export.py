import csv
import json
from typing import Dict, List

from .schedule import Schedule

def write_log_csv(log: List[Dict], path):
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["cycle", "type", "id", "instr", "extra"])
        for entry in log:
            c = entry.get("cycle")
            for a in entry.get("actions", []):
                extra = {k: v for k, v in a.items() if k not in ("type", "id", "instr")}
                writer.writerow([c, a.get("type"), a.get("id", ""), a.get("instr", ""), json.dumps(extra)])

def timeline_rows(schedule: Schedule, instructions: List[str]) -> List[List[str]]:
    """Pipeline diagram as rows of cells; ``STALL`` marks a held ID cycle."""
    rows = [["instr"] + [str(c) for c in range(1, schedule.max_cycles + 1)]]
    for t in schedule.timeline:
        row = [instructions[t.index]]
        for c in range(1, schedule.max_cycles + 1):
            stage = t.stage_at(c)
            if t.is_stalled_at(c):
                row.append("STALL")
            else:
                row.append(stage.label if stage is not None else "")
        rows.append(row)
    return rows

def write_timeline_csv(schedule: Schedule, instructions: List[str], path):
    with open(path, "w", newline="", encoding="utf-8") as f:
        csv.writer(f).writerows(timeline_rows(schedule, instructions))
