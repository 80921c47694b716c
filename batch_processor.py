"""
Batch Auditor
Audits several hosts one after another, isolating per-host failures
"""

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, Mapping, Sequence

from models import HostProfile

logger = logging.getLogger(__name__)


class BatchAuditor:
    """Runs HostAuditor over many hosts strictly sequentially"""

    def __init__(self, auditor, output_dir: str = 'logs'):
        self.auditor = auditor
        self.output_dir = output_dir
        self.errors: Dict[str, str] = {}

    def audit_hosts(self, profiles: Sequence[HostProfile],
                    invalid_hosts: Mapping[str, Exception] = None) -> Dict[str, Any]:
        """Audit every profile; one host's failure never stops the rest"""
        results = {
            'timestamp': datetime.now().isoformat(),
            'total': len(profiles) + len(invalid_hosts or {}),
            'successful': 0,
            'failed': 0,
            'servers': {},
            'errors': {}
        }

        for name, error in (invalid_hosts or {}).items():
            logger.warning(f"Skipping {name}: {error}")
            results['failed'] += 1
            results['errors'][name] = str(error)

        for profile in profiles:
            if not profile.enabled:
                logger.info(f"Skipping disabled host: {profile.name}")
                results['total'] -= 1
                continue
            try:
                outcome = self.auditor.run_audit(profile)
            except Exception as e:
                logger.error(f"Error auditing {profile.name}: {e}")
                self.errors[profile.name] = str(e)
                results['failed'] += 1
                results['errors'][profile.name] = str(e)
                continue

            results['servers'][profile.name] = outcome.to_dict()
            results['successful'] += 1

        return results

    def generate_summary_report(self, results: Dict) -> str:
        """Write batch-summary.md and batch-summary.json, return the markdown path"""
        os.makedirs(self.output_dir, exist_ok=True)
        report_path = os.path.join(self.output_dir, 'batch-summary.md')

        with open(report_path, 'w') as f:
            f.write("# Batch Audit Summary\n\n")
            f.write(f"**Generated:** {results['timestamp']}\n\n")
            f.write(f"**Total Hosts:** {results['total']}\n")
            f.write(f"**Successful:** {results['successful']}\n")
            f.write(f"**Failed:** {results['failed']}\n\n")
            f.write("---\n\n")

            if results['servers']:
                f.write("## Audited Hosts\n\n")
                f.write("| Host | Address | Risk | Score | Email |\n")
                f.write("|------|---------|------|-------|-------|\n")

                for name, data in results['servers'].items():
                    risk = data.get('risk') or {}
                    tier = risk.get('tier', 'n/a')
                    score = risk.get('score', '-')
                    email = "✓ sent" if data.get('delivered') else "⚠️ not sent"
                    f.write(f"| {name} | {data.get('address', '')} | {tier} | {score} | {email} |\n")

                f.write("\n")

            if results['errors']:
                f.write("## Failed Hosts\n\n")
                f.write("| Host | Error |\n")
                f.write("|------|-------|\n")
                for name, error in results['errors'].items():
                    f.write(f"| {name} | {error[:80]} |\n")
                f.write("\n")

        json_path = os.path.join(self.output_dir, 'batch-summary.json')
        with open(json_path, 'w') as f:
            json.dump(results, f, indent=2, default=str)

        return report_path
