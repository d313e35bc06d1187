"""Write selected scenes to disk as scene_N.jpg files."""

import uuid
from pathlib import Path

from scene_cutter.models import ResultRecord


class ResultExporter:
    """Saves result records into a fresh directory per run."""

    def __init__(self, output_base_dir: str):
        self.output_base_dir = Path(output_base_dir)

    def create_output_dir(self, identifier: str) -> Path:
        """Create a unique output directory for this run."""
        unique_id = f"{identifier}_{uuid.uuid4().hex[:8]}"
        output_dir = self.output_base_dir / unique_id
        output_dir.mkdir(parents=True, exist_ok=True)
        return output_dir

    def save(self, records: list[ResultRecord], output_dir: Path) -> list[Path]:
        """Write each record's JPEG bytes unchanged; returns paths in record order."""
        paths = []
        for record in records:
            path = output_dir / record.filename
            path.write_bytes(record.image_bytes)
            paths.append(path)
        return paths
