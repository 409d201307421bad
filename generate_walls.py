#!/usr/bin/env python
"""
Generate IFC walls and openings from DXF wall profiles.

Usage:
    python generate_walls.py input.dxf [output.ifc] [--config path] [--trace path]

Wall profiles and opening rectangles are read from the layers named in the
config. When the output IFC and its trace file already exist, the walls and
openings of the previous run are replaced instead of duplicated.

Example:
    python generate_walls.py drawings/elevations.dxf drawings/elevations.ifc
"""

import sys
from pathlib import Path

from profwall.core.config import get_default_config, load_config
from profwall.document.model_document import ModelDocument
from profwall.document.trace import ElementBinder
from profwall.generation.model_builder import build_model
from profwall.parsers.dxf_parser import parse_dxf


def _pop_option(args, name):
    """Remove '--name value' from args and return value (or None)."""
    if name not in args:
        return None
    index = args.index(name)
    if index + 1 >= len(args):
        print(f"Error: {name} requires a value")
        sys.exit(1)
    value = args[index + 1]
    del args[index:index + 2]
    return value


def main():
    args = sys.argv[1:]
    config_path = _pop_option(args, "--config")
    trace_path = _pop_option(args, "--trace")

    if len(args) < 1:
        print("Usage: python generate_walls.py input.dxf [output.ifc] [--config path] [--trace path]")
        print()
        print("Examples:")
        print("  python generate_walls.py drawings/elevations.dxf")
        print("  python generate_walls.py drawings/elevations.dxf out/model.ifc --trace out/model.trace.json")
        sys.exit(1)

    dxf_file = args[0]
    output_file = args[1] if len(args) >= 2 else str(Path(dxf_file).with_suffix('.ifc'))
    if trace_path is None:
        trace_path = str(Path(output_file).with_suffix('.trace.json'))

    if not Path(dxf_file).exists():
        print(f"Error: Input file not found: {dxf_file}")
        sys.exit(1)

    print("=" * 60)
    print("ProfWall - DXF profiles to IFC walls")
    print("=" * 60)
    print(f"Input:  {dxf_file}")
    print(f"Output: {output_file}")
    print(f"Trace:  {trace_path}")
    print()

    try:
        config = load_config(config_path) if config_path else get_default_config()

        # Step 1: Parse DXF
        print("[1/3] Parsing DXF file...")
        parser = parse_dxf(dxf_file)
        layers = parser.get_layer_names()
        wall_layers = [name for name in layers if config.matches_layer_pattern(name, "wall_profiles")]
        opening_layers = [name for name in layers if config.matches_layer_pattern(name, "openings")]
        profiles = parser.extract_profiles(wall_layers)
        openings = parser.extract_profiles(opening_layers)
        print(f"      [OK] Units: {parser.metadata.units}")
        print(f"      [OK] Wall profiles: {len(profiles)} on {len(wall_layers)} layer(s)")
        print(f"      [OK] Opening loops: {len(openings)} on {len(opening_layers)} layer(s)")
        print()

        # Step 2: Build walls and openings
        print("[2/3] Building walls and openings...")
        binder = ElementBinder(trace_path)
        document = None
        if Path(output_file).exists() and len(binder) > 0:
            document = ModelDocument.open(output_file)
            print(f"      [OK] Updating existing model ({len(binder)} traced elements)")
        document, report = build_model(profiles, openings, document=document, binder=binder, config=config)
        print(f"      [OK] Walls: {report.walls_created} created, {report.walls_rejected} rejected")
        print(f"      [OK] Openings: {report.openings_created} created, {report.openings_rejected} rejected")
        if report.stale_removed:
            print(f"      [OK] Removed {report.stale_removed} stale element(s)")
        print()

        # Step 3: Write IFC
        print("[3/3] Writing IFC file...")
        document.write(output_file)
        print(f"      [OK] Wrote IFC file")
        print()

        print("=" * 60)
        print("SUCCESS!")
        print("=" * 60)
        file_size = Path(output_file).stat().st_size / 1024
        print(f"Generated: {output_file} ({file_size:.1f} KB)")

    except Exception as e:
        print()
        print("=" * 60)
        print("ERROR!")
        print("=" * 60)
        print(f"Failed to process DXF file: {e}")
        print()
        print("Common issues:")
        print("  - No profiles found -> Check DXF layers match config patterns")
        print("  - Walls rejected -> Profiles must be closed, planar and vertical")
        print("  - Openings rejected -> Loops must be rectangles lying in a wall")
        sys.exit(1)


if __name__ == "__main__":
    main()
