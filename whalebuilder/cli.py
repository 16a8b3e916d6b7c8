"""Thin CLI wrapper for whalebuilder.

This module provides the command-line interface using Typer.
All business logic is delegated to the builds package.
"""

import contextlib
import signal
import threading
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from typer.core import TyperCommand

from whalebuilder import __version__
from whalebuilder.builds import execute, make_runner
from whalebuilder.config import Settings, get_settings, print_settings_json
from whalebuilder.errors import WhalebuilderError
from whalebuilder.logs import LogFollower, configure_logging, create_session
from whalebuilder.types import PROGRAM_NAME, BuildOptions, Verbosity, select_mode

app = typer.Typer(
    name=PROGRAM_NAME,
    help="Build '.deb' packages in a container using podman.",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()

# Exit code of a process killed by SIGTERM
SIGTERM_EXIT_CODE = 128 + signal.SIGTERM

# Separates our own flags from the dpkg-buildpackage options
BUILD_ARGS_SEPARATOR = "--"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"whalebuilder version {__version__}")
        raise typer.Exit()


def require_value(value: str | None) -> str | None:
    """Reject an empty string given as an option value."""
    if value is not None and not value.strip():
        raise typer.BadParameter("a non-empty value is required")
    return value


def resolve_dir(value: Path | None) -> Path | None:
    """Make a directory option absolute."""
    return None if value is None else value.resolve()


class BuildCommand(TyperCommand):
    """Command that only forwards the arguments after ``--``.

    Click would otherwise collect any stray positional into the build
    arguments, wherever it appears on the command line.
    """

    def parse_args(self, ctx: Any, args: list[str]) -> list[str]:
        if BUILD_ARGS_SEPARATOR in args:
            index = args.index(BUILD_ARGS_SEPARATOR)
            own_args, build_args = args[:index], args[index + 1 :]
        else:
            own_args, build_args = list(args), []

        rest = super().parse_args(ctx, own_args)
        stray = ctx.params.get("build_args")
        if stray:
            raise typer.BadParameter(
                f"unexpected argument {stray[0]!r}; "
                f"dpkg-buildpackage options go after '{BUILD_ARGS_SEPARATOR}'",
                ctx=ctx,
            )
        ctx.params["build_args"] = tuple(build_args)
        return rest


def build_options(
    *,
    build_args: Sequence[str] | None = None,
    deps: str | Path | None = None,
    image: str | None = None,
    keep: bool = False,
    no_build: bool = False,
    no_auto_deps: bool = False,
    output: str | Path | None = None,
    quiet: bool = False,
    save: str | None = None,
    verbose: bool = False,
    docker: bool = False,
    debug: bool = False,
    entry: bool = False,
    settings: Settings | None = None,
) -> BuildOptions:
    """Combine parsed flags with settings into a BuildOptions record.

    Flags win over settings; settings supply the image, engine and the
    default dpkg-buildpackage options.
    """
    if settings is None:
        settings = get_settings()

    if quiet:
        verbosity = Verbosity.QUIET
    elif verbose:
        verbosity = Verbosity.VERBOSE
    else:
        verbosity = Verbosity.NORMAL

    return BuildOptions(
        image=settings.image if image is None else image,
        engine="docker" if docker else settings.engine,
        build_args=tuple(build_args) if build_args else tuple(settings.build_args),
        deps_dir=None if deps is None else Path(deps),
        output_dir=None if output is None else Path(output),
        save_name=save,
        keep=keep,
        build=not no_build,
        auto_deps=not no_auto_deps,
        verbosity=verbosity,
        debug=debug,
        entry=entry,
    )


def parse_args(argv: Sequence[str], settings: Settings | None = None) -> BuildOptions:
    """Parse a command line without running anything.

    Args:
        argv: Arguments, without the program name.
        settings: Settings supplying defaults.

    Returns:
        The parsed options.

    Raises:
        typer.BadParameter: On empty values, missing directories or stray
            arguments before "--". Other usage errors (unknown flags,
            missing values) raise the matching Click exception.
    """
    command = typer.main.get_command(app)
    with command.make_context(PROGRAM_NAME, list(argv)) as ctx:
        params: dict[str, Any] = dict(ctx.params)
    params.pop("version", None)
    return build_options(**params, settings=settings)


@contextlib.contextmanager
def sigterm_as_exit() -> Iterator[None]:
    """Turn SIGTERM into SystemExit so cleanup runs as on Ctrl-C."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def handler(signum: int, frame: object) -> None:
        raise SystemExit(SIGTERM_EXIT_CODE)

    previous = signal.signal(signal.SIGTERM, handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


@app.command(cls=BuildCommand)
def main(
    build_args: Annotated[
        list[str] | None,
        typer.Argument(
            help="Options for 'dpkg-buildpackage' after '--' (default: -i -I -us -uc)",
            metavar="-- OPTIONS",
            show_default=False,
        ),
    ] = None,
    deps: Annotated[
        Path | None,
        typer.Option(
            "--deps",
            "-d",
            help="Folder with custom build dependencies",
            exists=True,
            file_okay=False,
            dir_okay=True,
            callback=resolve_dir,
        ),
    ] = None,
    image: Annotated[
        str | None,
        typer.Option(
            "--image",
            "-i",
            help="Image to use to build (default: debian:sid-slim)",
            callback=require_value,
        ),
    ] = None,
    keep: Annotated[
        bool,
        typer.Option("--keep", "-k", help="Keep container after build"),
    ] = False,
    no_build: Annotated[
        bool,
        typer.Option(
            "--no-build",
            "-nb",
            help="Don't build the package (but install dependencies)",
        ),
    ] = False,
    no_auto_deps: Annotated[
        bool,
        typer.Option(
            "--no-auto-deps",
            "-nd",
            help="Don't auto-install build dependencies from control file",
        ),
    ] = False,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Folder to place build artifacts",
            exists=True,
            file_okay=False,
            dir_okay=True,
            callback=resolve_dir,
        ),
    ] = None,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet", "-q", help="Suppress all output (will still generate a log file)"
        ),
    ] = False,
    save: Annotated[
        str | None,
        typer.Option(
            "--save",
            "-s",
            help="Save container as an image after build",
            callback=require_value,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Print more verbose output"),
    ] = False,
    docker: Annotated[
        bool,
        typer.Option(
            "--docker", "-w", help="Use docker to run containers (default is podman)"
        ),
    ] = False,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Generate debugging information"),
    ] = False,
    entry: Annotated[
        bool,
        typer.Option(
            "--entry",
            help="Build without a container (meant for debugging only)",
            hidden=True,
        ),
    ] = False,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Build '.deb' packages in a container using podman.

    Use it where you would run dpkg-buildpackage: the current directory is
    mounted read-only into the container and the results are copied back.
    """
    settings = get_settings()
    options = build_options(
        build_args=build_args,
        deps=deps,
        image=image,
        keep=keep,
        no_build=no_build,
        no_auto_deps=no_auto_deps,
        output=output,
        quiet=quiet,
        save=save,
        verbose=verbose,
        docker=docker,
        debug=debug,
        entry=entry,
        settings=settings,
    )
    mode = select_mode(options)

    session = create_session(settings.tmp_dir)
    terminal = None if options.verbosity is Verbosity.QUIET else console
    logger = configure_logging(
        session.log_path, options.verbosity, debug=options.debug, console=terminal
    )
    logger.debug("Effective settings: %s", print_settings_json(settings))
    logger.debug("Options: %s", options)

    follower: contextlib.AbstractContextManager[Any] = contextlib.nullcontext()
    if options.verbosity is Verbosity.VERBOSE:
        follower = LogFollower(session.log_path, console, grace=settings.follow_grace)

    runner = make_runner(mode, session)
    with follower, sigterm_as_exit():
        try:
            execute(mode, session, runner, settings, console=terminal)
        except WhalebuilderError as e:
            logger.error("%s", e)
            raise typer.Exit(code=e.exit_code) from None


def run() -> None:
    """Console script entry point."""
    app(prog_name=PROGRAM_NAME)


if __name__ == "__main__":
    run()
