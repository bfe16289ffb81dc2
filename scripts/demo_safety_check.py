#!/usr/bin/env python3
"""Submit demo prescriptions to the clinical safety API.

Each scenario exercises one prescription gate outcome:
- Warfarin + aspirin without an override (NeedsOverride, 400)
- The same prescription with an override reason (ApprovedWithWarnings, 201)
- Lisinopril in pregnancy (Blocked, 403)
- Amoxicillin for a patient with a penicillin allergy (class warning)
- Acetaminophen at a normal dose (ApprovedClean, 201)

Usage:
    # Against a running API
    python demo_safety_check.py --scenario warfarin-aspirin --api-url http://localhost:8082

    # In-process with the seed reference data (no server needed)
    python demo_safety_check.py --all --local

    # List all scenarios
    python demo_safety_check.py --list
"""

import argparse
import json
import logging
import sys
import tempfile
from pathlib import Path

import requests

sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent / "clinical-safety"))

SCENARIOS = {
    "warfarin-aspirin": {
        "name": "Warfarin + aspirin, no override",
        "expected": "needs-override",
        "payload": {
            "patientId": "DEMO-1001",
            "facilityId": "FAC-1",
            "organizationId": "ORG-1",
            "medication": {"name": "Aspirin", "dose": "81mg", "frequency": "daily"},
            "activeMedications": [{"name": "Warfarin", "dose": "5mg", "frequency": "daily"}],
            "patientAge": 72,
            "patientWeight": 80,
        },
    },
    "warfarin-aspirin-override": {
        "name": "Warfarin + aspirin with override",
        "expected": "approved-with-warnings",
        "payload": {
            "patientId": "DEMO-1001",
            "facilityId": "FAC-1",
            "organizationId": "ORG-1",
            "medication": {"name": "Aspirin", "dose": "81mg", "frequency": "daily"},
            "activeMedications": [{"name": "Warfarin", "dose": "5mg", "frequency": "daily"}],
            "patientAge": 72,
            "patientWeight": 80,
            "overrideReason": "Mechanical mitral valve; cardiology recommends dual therapy",
        },
    },
    "ace-pregnancy": {
        "name": "Lisinopril in pregnancy",
        "expected": "blocked",
        "payload": {
            "patientId": "DEMO-1002",
            "facilityId": "FAC-1",
            "medication": {"name": "Lisinopril", "dose": "10mg", "frequency": "daily"},
            "conditions": [{"code": "Z33.1", "name": "Pregnant state, incidental"}],
            "patientAge": 31,
            "overrideReason": "Attempted override (ignored for absolute contraindications)",
        },
    },
    "pcn-allergy-amoxicillin": {
        "name": "Penicillin allergy + amoxicillin",
        "expected": "needs-override",
        "payload": {
            "patientId": "DEMO-1003",
            "medication": {"name": "Amoxicillin", "dose": "500mg", "frequency": "tid"},
            "allergies": [{"allergen": "Penicillin", "severity": "severe", "reaction": "hives"}],
            "patientAge": 45,
        },
    },
    "clean": {
        "name": "Acetaminophen at a normal dose",
        "expected": "approved-clean",
        "payload": {
            "patientId": "DEMO-1004",
            "medication": {"name": "Acetaminophen", "dose": "650mg", "frequency": "q6h"},
            "patientAge": 40,
            "patientWeight": 70,
        },
    },
}


def submit_remote(api_url: str, payload: dict) -> tuple[int, dict]:
    response = requests.post(
        f"{api_url.rstrip('/')}/prescriptions",
        json=payload,
        headers={"X-User-Id": "demo-prescriber"},
        timeout=30,
    )
    return response.status_code, response.json()


def make_local_client():
    """Flask test client over a throwaway alert database."""
    from common.channels.broadcaster import ALL_STAFF_ROOM, InMemoryConnection
    from common.clinical_safety.store import AlertStore
    from dashboard.app import create_app
    from safety_src.config import Config
    from safety_src.factory import build_services

    cfg = Config()
    cfg.BROADCAST_ASYNC = False
    db_path = Path(tempfile.mkdtemp()) / "demo_alerts.db"
    services = build_services(cfg, alert_store=AlertStore(str(db_path)))

    staff = InMemoryConnection("demo-staff")
    services.broadcaster.registry.join(ALL_STAFF_ROOM, staff)

    app = create_app(services=services)
    return app.test_client(), staff


def print_result(key: str, scenario: dict, status: int, body: dict) -> bool:
    outcome = body.get("outcome") or body.get("data", {}).get("outcome")
    risk = body.get("riskAssessment") or body.get("data", {}).get("riskAssessment") or {}
    ok = outcome == scenario["expected"]

    print(f"\n{'✅' if ok else '❌'} {scenario['name']} [{key}]")
    print(f"   HTTP {status} -> {outcome} (expected {scenario['expected']})")
    print(f"   Risk: {risk.get('level')} (score {risk.get('score')})")
    for finding in risk.get("findings", [])[:3]:
        print(f"   - {finding['kind']} {finding['severity']}: {finding['description']}")
    return ok


def main():
    parser = argparse.ArgumentParser(
        description="Submit demo prescriptions to the clinical safety API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--scenario", choices=sorted(SCENARIOS), help="Scenario to run")
    parser.add_argument("--all", action="store_true", help="Run every scenario")
    parser.add_argument("--list", action="store_true", help="List scenarios")
    parser.add_argument("--local", action="store_true", help="Run in-process instead of over HTTP")
    parser.add_argument("--api-url", default="http://localhost:8082", help="Clinical safety API base URL")
    parser.add_argument("--json", action="store_true", help="Print full response bodies")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.list:
        for key, scenario in SCENARIOS.items():
            print(f"  {key:28s} {scenario['name']} (expects {scenario['expected']})")
        return 0

    keys = sorted(SCENARIOS) if args.all else [args.scenario] if args.scenario else []
    if not keys:
        parser.error("choose --scenario, --all or --list")

    client = staff = None
    if args.local:
        client, staff = make_local_client()

    passed = 0
    for key in keys:
        scenario = SCENARIOS[key]
        if client is not None:
            response = client.post(
                "/prescriptions", json=scenario["payload"], headers={"X-User-Id": "demo-prescriber"}
            )
            status, body = response.status_code, response.get_json()
        else:
            try:
                status, body = submit_remote(args.api_url, scenario["payload"])
            except requests.RequestException as e:
                print(f"❌ {key}: request failed: {e}")
                continue

        if print_result(key, scenario, status, body):
            passed += 1
        if args.json:
            print(json.dumps(body, indent=2))

    print(f"\n{passed}/{len(keys)} scenarios produced the expected outcome")
    if staff is not None:
        print(f"Critical alerts delivered to all-staff room: {len(staff.events('critical-alert'))}")
    return 0 if passed == len(keys) else 1


if __name__ == "__main__":
    sys.exit(main())
