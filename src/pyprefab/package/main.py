from __future__ import annotations

import sys
from argparse import Namespace
from collections.abc import Sequence
from importlib.metadata import PackageNotFoundError, version as get_version
from pathlib import Path

from pyprefab.config_model import PrefabConfig, check_audit_log
from pyprefab.constants import DEFAULT_AUDIT_LOG
from pyprefab.model.platform.platform_model import PlatformIdentity
from pyprefab.model.platform.platform_registry import get_platform
from pyprefab.package.audit.audit_emitter import emit_audit_log
from pyprefab.package.audit.generation_event_model import (
    EventType,
    GenerationEvent,
    LevelType,
    StageType,
    audit,
    record_event,
)
from pyprefab.package.build_systems.build_system_registry import create_build_system
from pyprefab.package.cli import parse_cli
from pyprefab.package.context_vars import current_generation_plan
from pyprefab.package.domain.package_model import Package
from pyprefab.package.errors import DuplicatePackageNamesError, UnknownDependencyError
from pyprefab.package.generation_plan import GenerationPlan


def pyprefab_version() -> str:
    try:
        return get_version("pyprefab")
    except PackageNotFoundError:
        return "(source)"


@audit(StageType.INIT, substage="version")
def execute_version() -> None:
    print(f"Python: {sys.version.split()[0]}")
    print(f"pyprefab: {pyprefab_version()}")


@audit(StageType.INIT, substage="config")
def init_config(args: Namespace) -> PrefabConfig:
    """
    Builds the run configuration from an optional config file and the command
    line. Command line options override file values.

    Args:
        args (Namespace): The parsed command line.

    Returns:
        PrefabConfig: The merged configuration.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ConfigError: If a value has the wrong type.
    """
    if args.config is not None:
        config = PrefabConfig.from_file(args.config)
        record_event(StageType.INIT, EventType.INPUT, substage="config", message=f"Loaded config file {args.config}")
    else:
        config = PrefabConfig()
    config.merge_from_mapping(PrefabConfig.cli_to_mapping(args))
    return config


@audit(StageType.INIT, substage="config_save")
def execute_config_save(config: PrefabConfig, path: Path) -> Path:
    return config.save_file(path)


@audit(StageType.LOAD, substage="packages")
def load_packages(package_paths: Sequence[str | Path]) -> list[Package]:
    """
    Loads every package and checks that they form a closed set.

    Args:
        package_paths (Sequence[str | Path]): The package directories.

    Returns:
        list[Package]: The loaded packages, in argument order.

    Raises:
        DuplicatePackageNamesError: If two packages share a name.
        UnknownDependencyError: If a package depends on a package that was
            not passed.
    """
    packages = [Package.load(Path(p)) for p in package_paths]

    by_name: dict[str, list[Package]] = {}
    for pkg in packages:
        by_name.setdefault(pkg.name, []).append(pkg)
        record_event(
            StageType.LOAD,
            EventType.INPUT,
            substage="packages",
            message=f"Loaded package {pkg.name} from {pkg.path}",
            payload={"schema_version": int(pkg.schema_version), "modules": [m.name for m in pkg.modules]})
    for name, same_name in by_name.items():
        if len(same_name) > 1:
            raise DuplicatePackageNamesError(name, [p.path for p in same_name])

    for pkg in packages:
        for dependency in pkg.dependencies:
            if dependency not in by_name:
                raise UnknownDependencyError(pkg.name, dependency)

    record_event(
        StageType.LOAD,
        EventType.VALIDATION,
        substage="packages",
        message=f"{len(packages)} package(s) loaded with all dependencies present")
    return packages


@audit(StageType.PLAN, substage="requirements")
def plan_requirements(config: PrefabConfig) -> list[PlatformIdentity]:
    """
    Builds the user's platform requirements from the configuration.

    Raises:
        UnknownPlatformError: If the platform is not installed.
        ConfigError: If a value required by the platform is missing.
    """
    requirements = get_platform(config.platform).requirements_from_config(config)
    record_event(
        StageType.PLAN,
        EventType.DECISION,
        substage="requirements",
        message="Targeting " + ", ".join(str(r) for r in requirements))
    return requirements


@audit(StageType.GENERATE, substage="build_system")
def generate(
        config: PrefabConfig,
        packages: Sequence[Package],
        requirements: Sequence[PlatformIdentity]) -> list[Path]:
    build_system = create_build_system(config.build_system, Path(config.output), packages)
    build_system.generate(requirements)
    return list(build_system.outputs)


def run(argv: list[str] | None = None) -> GenerationPlan:
    """
    Lifecycle orchestration entrypoint consisting of these main tasks:
      - create and register a GenerationPlan in context
      - INIT: build the configuration (or handle --version / --config-save)
      - LOAD: load and validate the packages
      - PLAN: build the platform requirements
      - GENERATE: run the build system
      - always emit the audit log

    Args:
        argv (list[str] | None): Command line arguments. Defaults to
            `sys.argv[1:]`.

    Returns:
        GenerationPlan: The plan of the run, including its audit log.

    Raises:
        Exception: Any error of a stage is recorded in the audit log and
            re-raised.
    """
    args = parse_cli(argv)
    plan = GenerationPlan(pyprefab_version=pyprefab_version())
    var_token = current_generation_plan.set(plan)
    # only destinations that passed check_audit_log reach the finally block
    audit_dest = DEFAULT_AUDIT_LOG
    verbose = bool(args.verbose)
    try:
        plan.audit_log.append(
            GenerationEvent.make(
                StageType.LIFECYCLE,
                EventType.START,
                message="Starting pyprefab generation"))

        if args.version:
            audit_dest = check_audit_log(args.audit_log or DEFAULT_AUDIT_LOG)
            execute_version()
            return plan

        config = init_config(args)
        audit_dest = check_audit_log(config.audit_log)
        verbose = config.verbose

        if args.config_save is not None:
            saved = execute_config_save(config, args.config_save)
            plan.outputs.append(saved)
            plan.audit_log.append(
                GenerationEvent.make(
                    StageType.LIFECYCLE,
                    EventType.ACTION,
                    message=f"Saved configuration to {saved} and exiting"))
            return plan

        config.validate()
        plan.build_system = config.build_system

        packages = load_packages(config.package_paths)
        plan.packages = [p.name for p in packages]

        requirements = plan_requirements(config)
        plan.outputs.extend(generate(config, packages, requirements))

        plan.audit_log.append(
            GenerationEvent.make(
                StageType.LIFECYCLE,
                EventType.COMPLETE,
                message="Completed pyprefab generation"))
    except Exception as e:
        plan.audit_log.append(
            GenerationEvent.make(
                StageType.LIFECYCLE,
                EventType.FAIL,
                LevelType.ERROR,
                message=str(e)))
        raise
    finally:
        current_generation_plan.reset(var_token)
        emit_audit_log(plan, dest=audit_dest, verbose=verbose)
    return plan


def main() -> None:
    """
    Console entry point. Errors are reported on stderr with exit status 1.
    """
    try:
        run()
    except KeyboardInterrupt:
        sys.exit(1)
    except Exception as e:
        print(f"pyprefab: error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":  # pragma: no cover
    main()
