import os
import json
import logging
from datetime import datetime
from typing import Dict, Any

logger = logging.getLogger("gms_service")


class ResultWriter:
    def __init__(self, base_dir: str = "output"):
        self.base_dir = base_dir

    def save_result(self, run_id: str, data: Dict[str, Any]):
        """
        Saves a cycle result to <base_dir>/<YYYY-MM-DD>/<run_id>.json.
        A failed write is logged and never fails the cycle.
        """
        try:
            today = datetime.now().strftime("%Y-%m-%d")
            output_dir = os.path.join(self.base_dir, today)

            if not os.path.exists(output_dir):
                os.makedirs(output_dir, exist_ok=True)
                logger.info(f"Created output directory: {output_dir}")

            filepath = os.path.join(output_dir, f"{run_id}.json")

            with open(filepath, 'w') as f:
                json.dump(data, f, indent=4)

            logger.info(f"Saved cycle results to: {filepath}")
            return filepath
        except (OSError, TypeError) as e:
            logger.error(f"Failed to save cycle results: {e}")
            return None
