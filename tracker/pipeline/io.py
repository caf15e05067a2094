import json
import re
from datetime import datetime, timedelta

from tracker import config
from tracker.pipeline.aggregate import venue_total
from tracker.pipeline.owners import lookup_owner


def trim_log_by_time(log_path, retention_days=14):
    """
    Remove log entries older than retention_days.
    Returns list of lines to keep.
    """
    if not log_path.exists():
        return []

    cutoff = datetime.utcnow() - timedelta(days=retention_days)
    cutoff_str = cutoff.strftime("%Y-%m-%d %H:%M:%S")

    kept_lines = []
    current_entry_recent = False

    with open(log_path, "r") as f:
        for line in f:
            match = re.match(r"\[(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})\]", line)
            if match:
                current_entry_recent = match.group(1) >= cutoff_str

            if current_entry_recent:
                kept_lines.append(line)

    return kept_lines


def save_log(log_lines, log_path=None, retention_days=None):
    """Append this run's log lines after the entries still inside the retention window."""
    log_path = log_path or config.LOG_PATH
    retention_days = retention_days or config.LOG_RETENTION_DAYS
    existing_log = trim_log_by_time(log_path, retention_days=retention_days)
    log_content = existing_log + ["\n--- New Run ---\n"] + [line + "\n" for line in log_lines]

    log_path.parent.mkdir(parents=True, exist_ok=True)
    with open(log_path, "w") as f:
        f.writelines(log_content)


def report_paths(location, reports_dir=None):
    reports_dir = reports_dir or config.REPORTS_DIR
    slug = re.sub(r"[^a-z0-9]+", "-", location.lower()).strip("-") or "location"
    return reports_dir / f"{slug}-gigs.html", reports_dir / f"{slug}-gigs.json"


def matrix_to_json(result, generated_at):
    """Serializable view of a refresh: labels plus one entry per venue."""
    return {
        "location": result.location,
        "status": result.status,
        "generated_at": generated_at,
        "labels": result.labels,
        "gig_count": len(result.gigs),
        "dropped_count": len(result.dropped),
        "invalid_count": result.invalid_count,
        "venues": [
            {
                "id": venue_id,
                "name": venue["name"],
                "owner": lookup_owner(result.owners, venue_id),
                "total": venue_total(venue),
                "weeks": venue["weeks"],
            }
            for venue_id, venue in result.venues.items()
        ],
    }


def save_report(html, data, html_path, json_path):
    html_path.parent.mkdir(parents=True, exist_ok=True)
    with open(html_path, "w") as f:
        f.write(html)
    with open(json_path, "w") as f:
        json.dump(data, f, indent=2)
