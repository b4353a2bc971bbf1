"""LinearDeformation command-line interface."""
from __future__ import annotations

import argparse
import json
import os
import sys
import uuid
import warnings

import yaml

from linear_deformation.core.config import AppConfig
from linear_deformation.core.logger import StructuredLogger
from linear_deformation.fea.errors import (
    EigensolveNonConvergence,
    FactorizationError,
    ModelDataError,
)

EXIT_OK = 0
EXIT_NUMERICAL = 1
EXIT_MODEL = 2


def _build_parser():
    parser = argparse.ArgumentParser(
        prog="linear-deformation",
        description="Linear static and modal analysis of bar/truss structures",
    )
    parser.add_argument("--version", action="version", version="LinearDeformation v0.1.0")
    parser.add_argument("--config", help="YAML application configuration file")
    parser.add_argument("--log-dir", help="Directory for app.log and analyses.jsonl")

    sub = parser.add_subparsers(dest="command")

    run = sub.add_parser("run", help="Run the analysis described by a model file")
    run.add_argument("model", help="YAML model file")
    run.add_argument("--neigvs", type=int, help="Number of modes (modal only)")
    run.add_argument("--omega-shift", type=float, help="Mass shift (modal only)")
    run.add_argument("--lumped", action="store_true", help="Use lumped mass (modal only)")
    run.add_argument("--output", help="Write the result summary to this JSON file")

    return parser


def _print_summary(summary):
    print("=" * 60)
    print("  Linear Deformation Analysis Result")
    print("=" * 60)
    print("  Analysis:      %s" % summary["analysis"])
    print("  Nodes:         %d" % summary["n_nodes"])
    print("  Free DOFs:     %d" % summary["n_free_dofs"])
    print()
    if summary["analysis"] == "static":
        print("  Elastic work:  %.6e" % summary["work"])
        print()
        print("  --- Nodal displacements ---")
        for i, row in enumerate(summary["displacement"]):
            print("  %5d  %s" % (i, "  ".join("% .6e" % v for v in row)))
    else:
        print("  Modes:         %d" % summary["neigvs"])
        print()
        print("  %5s  %16s  %16s" % ("mode", "omega [rad/s]", "f [Hz]"))
        for i, (w, f) in enumerate(zip(summary["omega"], summary["frequencies_hz"])):
            print("  %5d  %16.6e  %16.6e" % (i, w, f))
    print("=" * 60)


def _do_run(args, app_config, slog):
    from linear_deformation.fea.algorithms import linearstatics, modal
    from linear_deformation.fea.model_file import load_model, summarize
    from linear_deformation.fea.solver import LinearDeformationSolver

    session_id = uuid.uuid4().hex
    analysis = "unknown"
    inputs = {"model": os.path.abspath(args.model)}
    slog.log_operation(
        session_id, "run.started", user_action="cli run",
        data={"model": inputs["model"], "output": args.output},
    )
    try:
        analysis, modeldata = load_model(args.model)
        if analysis == "modal":
            if args.neigvs is not None:
                modeldata["neigvs"] = args.neigvs
            if args.omega_shift is not None:
                modeldata["omega_shift"] = args.omega_shift
            if args.lumped:
                modeldata["use_lumped_mass"] = True
            inputs.update(
                {k: modeldata[k] for k in ("neigvs", "omega_shift", "use_lumped_mass")
                 if k in modeldata}
            )

        solver = LinearDeformationSolver(app_config)
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", EigensolveNonConvergence)
            if analysis == "static":
                linearstatics(modeldata, solver)
            else:
                modal(modeldata, solver)
        for w in caught:
            print("  WARNING: %s" % w.message, file=sys.stderr)
    except (ModelDataError, FileNotFoundError, ValueError, IndexError, yaml.YAMLError) as exc:
        slog.app.error("Model error in %s: %s", args.model, exc)
        slog.log_analysis(session_id, analysis, inputs, {"error": str(exc)}, status="failed")
        print("Error: %s" % exc, file=sys.stderr)
        return EXIT_MODEL
    except FactorizationError as exc:
        slog.app.error("Numerical failure in %s: %s", args.model, exc)
        slog.log_analysis(session_id, analysis, inputs, {"error": str(exc)}, status="failed")
        print("Error: %s" % exc, file=sys.stderr)
        return EXIT_NUMERICAL

    summary = summarize(analysis, modeldata)
    _print_summary(summary)

    outputs = {k: v for k, v in summary.items() if k in ("n_free_dofs", "work", "neigvs", "omega")}
    slog.log_analysis(session_id, analysis, inputs, outputs)

    if args.output:
        out_dir = os.path.dirname(os.path.abspath(args.output))
        os.makedirs(out_dir, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2)
        print("  JSON result: %s" % args.output)

    return EXIT_OK


def main(argv=None):
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command != "run":
        parser.print_help()
        return EXIT_OK

    app_config = AppConfig(args.config)
    log_dir = args.log_dir or app_config.get("logging.dir", "data/logs")
    slog = StructuredLogger(log_dir, level=app_config.get("logging.level", "INFO"))
    try:
        return _do_run(args, app_config, slog)
    finally:
        slog.close()


if __name__ == "__main__":
    sys.exit(main())
