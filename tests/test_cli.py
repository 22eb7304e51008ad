"""
==============================================================================
Local Scanner CLI Tests
==============================================================================
"""

from typing import Optional

import numpy as np
import pytest

from erp_barcode.config import Settings
from erp_barcode.core.exceptions import camera_permission_denied, camera_stream_error
from erp_barcode.scanner import ScanArbiter, cli
from erp_barcode.scanner.camera import FacingMode

from conftest import EAN13, ScriptedDecoder


class StillCamera:
    """Capture source returning the same blank frame."""

    def __init__(self, error: Optional[str] = None):
        self.error = error
        self.facing: Optional[FacingMode] = None
        self.stopped = False

    def start(self, facing: FacingMode) -> None:
        if self.error == "denied":
            raise camera_permission_denied()
        if self.error == "busy":
            raise camera_stream_error("device busy")
        self.facing = facing

    def snapshot(self) -> np.ndarray:
        return np.zeros((24, 32, 3), dtype=np.uint8)

    def set_torch(self, enabled: bool) -> bool:
        return False

    def stop(self) -> None:
        self.stopped = True


@pytest.fixture
def camera() -> StillCamera:
    return StillCamera()


@pytest.fixture
def decoder() -> ScriptedDecoder:
    return ScriptedDecoder(EAN13)


@pytest.fixture(autouse=True)
def local_scanner(monkeypatch, settings: Settings, camera: StillCamera, decoder: ScriptedDecoder):
    monkeypatch.setattr(cli, "get_settings", lambda: settings)
    monkeypatch.setattr(
        cli,
        "build_arbiter",
        lambda s, facing: ScanArbiter(decoder, source=camera, interval=0, facing_mode=facing),
    )


class TestScannerCli:

    def test_prints_accepted_barcode(self, capsys, camera: StillCamera):
        assert cli.main(["--camera", "front"]) == cli.EXIT_OK

        out = capsys.readouterr().out
        assert f"Barcode:   {EAN13}" in out
        assert "Format:    EAN-13" in out
        assert "Formatted: 4 006381 333931" in out
        assert "Valid:     yes" in out
        assert camera.facing == FacingMode.USER
        assert camera.stopped

    def test_strict_format_mismatch(self, capsys):
        assert cli.main(["--format", "UPC-A"]) == cli.EXIT_OK
        assert "Valid:     no" in capsys.readouterr().out

    def test_timeout_without_scan(self, capsys, decoder: ScriptedDecoder):
        decoder.text = None
        assert cli.main(["--timeout", "0"]) == cli.EXIT_NO_SCAN
        assert "No barcode scanned" in capsys.readouterr().err

    def test_permission_denied(self, capsys, camera: StillCamera):
        camera.error = "denied"
        assert cli.main([]) == cli.EXIT_PERMISSION_DENIED
        assert "permission" in capsys.readouterr().err.lower()

    def test_stream_error(self, capsys, camera: StillCamera):
        camera.error = "busy"
        assert cli.main([]) == cli.EXIT_STREAM_ERROR
        assert "Failed to access camera" in capsys.readouterr().err

    def test_rejects_unknown_camera(self):
        with pytest.raises(SystemExit):
            cli.parse_args(["--camera", "side"])
