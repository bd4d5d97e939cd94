"""Config commands -- view and modify the stored backend configuration.

Provides the ``almaverify config`` sub-command group. Settings are
persisted in the almaverify config directory
(:class:`~almaverify.models.StoredConfig`) and sit below ``ALMA_*``
environment variables and CLI flags in the precedence chain.
"""

from __future__ import annotations

import typer

from almaverify.output import error, format_response, info, success, suggest


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the stored configuration and the effective backend settings.

    The API key is always masked.

    Example::

        almaverify config show
        almaverify --json config show
    """
    from almaverify.config import config_path, load_backend_config, load_stored_config
    from almaverify.exceptions import ConfigError

    try:
        stored = load_stored_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    info(f"Config file: {config_path()}")
    data = {"stored": stored.model_dump(mode="json")}

    try:
        effective = load_backend_config()
    except ConfigError as exc:
        data["effective"] = None
        format_response(data)
        error(str(exc))
        suggest("Set it: almaverify config set api_root https://.../almaws/v1")
        raise typer.Exit(code=exc.exit_code) from None

    data["effective"] = {
        "api_root": effective.api_root,
        "api_key": "***",
        "timeout": effective.timeout,
        "verify_ssl": effective.verify_ssl,
    }
    format_response(data)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="One of: api_root, api_key_source, timeout, verify_ssl."),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a stored configuration value.

    The API key itself is never written to disk; store a source such as
    ``env:ALMA_APIKEY`` or ``file:~/.alma-key`` instead.

    Example::

        almaverify config set api_root https://api-na.hosted.exlibrisgroup.com/almaws/v1
        almaverify config set api_key_source file:~/.alma-key
        almaverify config set timeout 5
    """
    from almaverify.config import set_config_value
    from almaverify.exceptions import ConfigError

    try:
        set_config_value(key, value)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Set {key} = {value}")
