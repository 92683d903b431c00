# tests/test_smoke.py
import os
import sys
import traceback
from pathlib import Path
import importlib
import time

# Headless Qt for the chart context and settings modules
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

SRC_DIR = (Path(__file__).parent.parent / "src").resolve()
IGNORE_MODULES = set()
IGNORE_DIR_NAMES = {"__pycache__", ".venv", "venv", ".pytest_cache", ".mypy_cache", "build", "dist"}
# Packages that must stay importable without Qt
QT_FREE_PACKAGES = ("backend",)
# Leaf helpers that must not import the layers built on top of them
LEAF_MODULES = ("core/cache.py", "core/datetime_utils.py", "core/geometry.py", "core/paths.py")
UPPER_LAYERS = ("backend", "frontend")


def discover_module_names(src_dir: Path):
    for path in src_dir.rglob("*.py"):
        if any(part in IGNORE_DIR_NAMES for part in path.parts):
            continue
        rel = path.relative_to(src_dir).with_suffix("")
        parts = list(rel.parts)
        if parts[-1] == "__init__":
            parts = parts[:-1]
        if not parts or any(p.startswith("_") for p in parts):
            continue
        yield ".".join(parts)


def _import_all(src_dir: Path, verbose: bool = True):
    if str(src_dir) not in sys.path:
        sys.path.insert(0, str(src_dir))
    failed = []
    start = time.perf_counter()
    for mod_name in sorted(set(discover_module_names(src_dir))):
        if mod_name in IGNORE_MODULES:
            continue
        try:
            importlib.import_module(mod_name)
            if verbose:
                print(f"Imported: {mod_name}")
        except Exception:
            print(f"Failed to import: {mod_name}")
            traceback.print_exc()
            failed.append(mod_name)
    return failed, time.perf_counter() - start


def _qt_imports(src_dir: Path):
    for package in QT_FREE_PACKAGES:
        for path in (src_dir / package).rglob("*.py"):
            text = path.read_text(encoding="utf-8")
            if "PySide6" in text:
                yield str(path.relative_to(src_dir))


def _layer_violations(src_dir: Path):
    prefixes = tuple(f"{kw} {name}" for kw in ("from", "import") for name in UPPER_LAYERS)
    for module in LEAF_MODULES:
        for line in (src_dir / module).read_text(encoding="utf-8").splitlines():
            if line.strip().startswith(prefixes):
                yield f"{module}: {line.strip()}"


def main():
    print(f"Smoke importing all modules under: {SRC_DIR}\n")
    failed, dur = _import_all(SRC_DIR, verbose=True)
    if failed:
        print(f"\n{len(failed)} module(s) failed to import:")
        for m in failed:
            print(f"  - {m}")
        print(f"Duration: {dur:.2f}s")
        raise SystemExit(1)
    print(f"\nAll modules imported successfully ({dur:.2f}s)")
    raise SystemExit(0)


# ---------- Pytest entrypoints ----------
def test_smoke_imports():
    failed, _ = _import_all(SRC_DIR, verbose=False)
    assert not failed, f"{len(failed)} module(s) failed to import: {failed}"


def test_backend_does_not_import_qt():
    offenders = list(_qt_imports(SRC_DIR))
    assert not offenders, f"Qt imported from backend modules: {offenders}"


def test_core_does_not_import_upper_layers():
    offenders = list(_layer_violations(SRC_DIR))
    assert not offenders, f"core imports from upper layers: {offenders}"


# ---------- Script entrypoint ----------
if __name__ == "__main__":
    main()
