import logging

from nypd_shootings import (
    build_report,
    load_borough_boundaries,
    load_incident_data,
    write_report,
)


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    incidents = load_incident_data()
    boundaries = load_borough_boundaries()
    report_html = build_report(incidents, boundaries)
    path = write_report(report_html)
    print(f"Report written to {path}")


if __name__ == "__main__":
    main()
