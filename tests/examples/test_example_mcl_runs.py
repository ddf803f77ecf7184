"""Smoke test for the Monte Carlo localization example script.

Runs the script in a subprocess with the Agg backend and validates the
machine-readable [MCL_SUMMARY] JSON line:
- every cycle localizes
- a particle array is published every cycle
- the final estimate is close to the ground truth
"""

import json
import os
import re
import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from typing import Any, Dict, Optional


def parse_mcl_summary(stdout: str) -> Optional[Dict[str, Any]]:
    """Parse the [MCL_SUMMARY] JSON line from script output."""
    match = re.search(r"\[MCL_SUMMARY\]\s*(\{.*\})", stdout)
    if not match:
        return None
    try:
        return json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise ValueError(f"Malformed MCL_SUMMARY JSON: {e}")


class TestExampleMCLRuns(unittest.TestCase):
    def setUp(self):
        self.python_exe = sys.executable
        self.workspace_root = Path(__file__).parent.parent.parent
        self.script_path = self.workspace_root / "examples" / "example_mcl_localization.py"
        self.assertTrue(self.script_path.exists(), f"Script not found: {self.script_path}")

    def _run(self, *args):
        env = os.environ.copy()
        env.update({
            "MPLBACKEND": "Agg",
            "PYTHONPATH": str(self.workspace_root),
        })
        return subprocess.run(
            [self.python_exe, "-m", "examples.example_mcl_localization", *args],
            cwd=self.workspace_root,
            capture_output=True,
            text=True,
            timeout=120,
            env=env,
        )

    def test_default_run(self):
        result = self._run()
        self.assertEqual(result.returncode, 0, f"Script failed with stderr:\n{result.stderr}")
        self.assertIn("MONTE CARLO LOCALIZATION DEMO", result.stdout)

        summary = parse_mcl_summary(result.stdout)
        self.assertIsNotNone(summary, "Missing [MCL_SUMMARY] JSON line in output")

        self.assertEqual(summary["cycles"], 40)
        self.assertEqual(summary["localized_cycles"], summary["cycles"])
        self.assertEqual(summary["published_particle_arrays"], summary["cycles"])
        self.assertLess(summary["final_position_error"], 0.5)

    def test_threaded_run_with_figures(self):
        with tempfile.TemporaryDirectory() as tmp:
            result = self._run("--steps", "12", "--threads", "2", "--save-dir", tmp)
            self.assertEqual(result.returncode, 0, f"Script failed with stderr:\n{result.stderr}")
            self.assertTrue((Path(tmp) / "mcl_final_state.png").exists())
            self.assertTrue((Path(tmp) / "mcl_errors.png").exists())

        summary = parse_mcl_summary(result.stdout)
        self.assertEqual(summary["cycles"], 12)


if __name__ == "__main__":
    unittest.main()
