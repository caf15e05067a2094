#!/usr/bin/env python3
"""
Count gigs per venue per week from the Live Music Locator API and render
them as an HTML table.

Fetches 10 weeks back and 6 weeks ahead (configurable) one week at a time,
buckets gigs into weeks starting Monday 04:00, and writes:
- reports/<location>-gigs.html (the table)
- reports/<location>-gigs.json (the venue x week matrix)
- reports/track-log.txt (run log, 14 days retained)
"""

import argparse
import sys
from datetime import datetime

from tqdm import tqdm

from tracker import config
from tracker.pipeline.io import matrix_to_json, report_paths, save_log, save_report
from tracker.refresh import STATUS_CANCELLED, STATUS_NO_DATA, Refresher
from tracker.render import render_page


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Weekly gig counts per venue")
    parser.add_argument(
        "location",
        nargs="?",
        default=config.DEFAULT_LOCATION,
        help=f"gig API location (known: {', '.join(config.LOCATIONS)})",
    )
    parser.add_argument("--filter", dest="filter_text", default=None,
                        help="only show venues whose name contains this text")
    parser.add_argument("--owners-url", default=config.OWNERS_CSV_URL,
                        help="CSV with venue id and owner columns")
    parser.add_argument("--on-error", choices=config.ON_WEEK_ERROR_CHOICES, default=config.ON_WEEK_ERROR,
                        help="what to do when a week fails to load")
    parser.add_argument("--no-progress", action="store_true", help="hide the progress bar")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    run_timestamp = datetime.utcnow().isoformat() + "Z"
    log_lines = []

    def log(message, level="INFO"):
        """Log a message to both console and log buffer."""
        timestamp = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S")
        log_entry = f"[{timestamp}] [{level}] {message}"
        print(message)
        log_lines.append(log_entry)

    log(f"Starting gig refresh at {run_timestamp}")
    if args.location not in config.LOCATIONS:
        log(f"  Note: '{args.location}' is not one of {', '.join(config.LOCATIONS)}", "WARNING")

    refresher = Refresher(owners_url=args.owners_url or "", on_error=args.on_error, log_func=log)

    with tqdm(total=100, unit="%", desc="Loading weeks", disable=args.no_progress, leave=False) as bar:
        def progress(percent):
            bar.update(percent - bar.n)

        result = refresher.refresh(args.location, progress=progress)

    # Week summary table
    log("")
    log("=" * 60)
    log("WEEK SUMMARY")
    log("=" * 60)
    log(f"{'Week':<10} {'From':<12} {'To':<12} {'Gigs':>6} {'Errors':>7} {'Time':>8}")
    log("-" * 60)
    for m in result.metrics:
        time_str = f"{m.duration_ms:.0f}ms"
        log(f"{m.label:<10} {m.date_from:<12} {m.date_to:<12} {m.gig_count:>6} {m.errors:>7} {time_str:>8}")
    log("-" * 60)
    total_gigs = sum(m.gig_count for m in result.metrics)
    total_errors = sum(m.errors for m in result.metrics)
    total_time = sum(m.duration_ms for m in result.metrics)
    log(f"{'TOTAL':<36} {total_gigs:>6} {total_errors:>7} {total_time:.0f}ms")
    log("=" * 60)

    failed_weeks = [m.label for m in result.metrics if m.errors]
    if failed_weeks:
        log(f"WARNING: Failed to load weeks: {', '.join(failed_weeks)}", "ERROR")

    if result.status == STATUS_CANCELLED:
        log("Refresh cancelled, no report written", "WARNING")
    else:
        if result.status == STATUS_NO_DATA:
            log("No gigs found for the selected location.", "WARNING")

        html_path, json_path = report_paths(args.location)
        html = render_page(result, filter_text=args.filter_text)
        save_report(html, matrix_to_json(result, run_timestamp), html_path, json_path)
        log(f"Report saved to {html_path}")
        log(f"Matrix saved to {json_path}")

    save_log(log_lines)
    log(f"Log saved to {config.LOG_PATH}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
