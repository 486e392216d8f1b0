"""DWG to DXF conversion.

Runs the ODA File Converter as an external process with a hard timeout.
A failed or expired conversion raises ConversionError and is not retried.
"""

import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from ..errors import ConversionError, FileError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0  # seconds

# Common ODA File Converter paths
ODA_PATHS = [
    # macOS
    "/Applications/ODAFileConverter.app/Contents/MacOS/ODAFileConverter",
    "/usr/local/bin/ODAFileConverter",
    # Linux
    "/usr/bin/ODAFileConverter",
    "/opt/ODAFileConverter/ODAFileConverter",
    # Windows
    "C:\\Program Files\\ODA\\ODAFileConverter\\ODAFileConverter.exe",
]


def find_oda_converter(configured: Optional[str] = None) -> Optional[str]:
    """Locate the converter: explicit path, ODA_FILE_CONVERTER, known paths, PATH."""
    for candidate in (configured, os.environ.get("ODA_FILE_CONVERTER")):
        if candidate and os.path.isfile(candidate):
            return candidate

    for path in ODA_PATHS:
        if os.path.isfile(path):
            return path

    return shutil.which("ODAFileConverter")


def convert_dwg_to_dxf(
    dwg_path: str | Path,
    output_dir: Optional[str | Path] = None,
    timeout: float = DEFAULT_TIMEOUT,
    converter_path: Optional[str] = None,
    dxf_version: str = "ACAD2018",
) -> Path:
    """Convert a DWG file to DXF.

    Args:
        dwg_path: Path to the input DWG file
        output_dir: Directory for the DXF (default: next to the input)
        timeout: Seconds to wait for the converter before giving up
        converter_path: Converter executable, located automatically if None
        dxf_version: Target DXF version

    Returns:
        Path to the converted DXF file

    Raises:
        FileError: If the input is missing or not a DWG file
        ConversionError: If the converter is unavailable, fails or times out
    """
    dwg_path = Path(dwg_path)

    if not dwg_path.exists():
        raise FileError(f"DWG file not found: {dwg_path}", {"path": str(dwg_path)})
    if not is_dwg_file(dwg_path):
        raise FileError(f"Expected .dwg file, got: {dwg_path.suffix}", {"path": str(dwg_path)})

    executable = find_oda_converter(converter_path)
    if not executable:
        raise ConversionError(
            "ODA File Converter not found; set ODA_FILE_CONVERTER",
            {"path": str(dwg_path)},
        )

    output_dir = Path(output_dir) if output_dir is not None else dwg_path.parent
    output_dir.mkdir(parents=True, exist_ok=True)

    # ODA converts whole directories
    with tempfile.TemporaryDirectory() as temp_input, tempfile.TemporaryDirectory() as temp_output:
        shutil.copy2(dwg_path, Path(temp_input) / dwg_path.name)

        # ODAFileConverter <input_dir> <output_dir> <version> <type> <recurse> <audit>
        cmd = [executable, temp_input, temp_output, dxf_version, "DXF", "0", "1"]
        logger.info(f"Running ODA converter: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        except subprocess.TimeoutExpired as e:
            raise ConversionError(
                f"DWG conversion timed out after {timeout:g}s",
                {"path": str(dwg_path), "timeout": timeout},
            ) from e
        except OSError as e:
            raise ConversionError(
                f"Could not run ODA converter: {e}",
                {"path": str(dwg_path), "converter": executable},
            ) from e

        if result.returncode != 0:
            raise ConversionError(
                "ODA converter failed",
                {"path": str(dwg_path), "returncode": result.returncode, "stderr": result.stderr},
            )

        temp_dxf = Path(temp_output) / (dwg_path.stem + ".dxf")
        if not temp_dxf.exists():
            temp_dxf = next(
                (f for f in Path(temp_output).iterdir() if f.suffix.lower() == ".dxf"),
                temp_dxf,
            )
        if not temp_dxf.exists():
            raise ConversionError(
                "Converter produced no DXF output",
                {"path": str(dwg_path), "stdout": result.stdout},
            )

        final_dxf = output_dir / (dwg_path.stem + ".dxf")
        shutil.copy2(temp_dxf, final_dxf)

    logger.info(f"Converted {dwg_path} to {final_dxf}")
    return final_dxf


def is_dwg_file(path: str | Path) -> bool:
    """Check if file is a DWG file."""
    return Path(path).suffix.lower() == ".dwg"


def is_dxf_file(path: str | Path) -> bool:
    """Check if file is a DXF file."""
    return Path(path).suffix.lower() == ".dxf"
