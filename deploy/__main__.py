# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

"""
Bot project deployment

Provision the Azure resources for a bot project and/or publish the built bot to them.

Usage:
    python -m deploy create --name NAME --environment ENV --location LOCATION [--app-password PASSWORD]
    python -m deploy deploy --name NAME --environment ENV [--luis-authoring-key KEY] [--luis-authoring-region REGION]
    python -m deploy create-and-deploy ...

Every option can also be given in a YAML file passed with --config, command line options win.
The subscription id and tokens are read from AZURE_SUBSCRIPTION_ID, AZURE_ACCESS_TOKEN and AZURE_GRAPH_TOKEN.
"""

# stdlib
import argparse
import sys
from asyncio import run
from logging import basicConfig, getLogger
from os import getcwd
from typing import Any

# project
from deploy.common import now
from deploy.orchestrator import BotProjectDeploy
from settings.deploy_config import DeploymentConfig, config_from_env
from settings.env import get_log_level
from settings.user_config import load_deploy_options

log = getLogger("deploy")

COMMANDS = ("create", "deploy", "create-and-deploy")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Provision and deploy a bot project to Azure")
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--config", help="YAML file with deploy options")
    parser.add_argument("--name", help="Bot name, used as the prefix of every Azure resource")
    parser.add_argument("--environment", help="Environment suffix, e.g. dev")
    parser.add_argument("--location", help="Azure region to provision into")
    parser.add_argument("--app-password", dest="app_password", help="Password for a new app registration")
    parser.add_argument("--luis-authoring-key", dest="luis_authoring_key")
    parser.add_argument("--luis-authoring-region", dest="luis_authoring_region")
    parser.add_argument("--bot-path", dest="bot_path", help="Publish dialogs from an external bot project")
    parser.add_argument("--language", help="LU culture, defaults to en-us")
    parser.add_argument("--project-path", dest="project_path", help="Bot runtime project, defaults to cwd")
    parser.add_argument("--subscription-id", dest="subscription_id")
    return parser.parse_args(argv)


def resolve_options(args: argparse.Namespace) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if args.config:
        with open(args.config, encoding="utf-8") as f:
            options.update(load_deploy_options(f.read(), log))
    options.update({k: v for k, v in vars(args).items() if v is not None and k not in ("command", "config")})
    return options


def require(options: dict[str, Any], *names: str) -> None:
    missing = [name for name in names if not options.get(name)]
    if missing:
        raise SystemExit(f"Missing required options: {', '.join('--' + m.replace('_', '-') for m in missing)}")


def build_config(options: dict[str, Any]) -> DeploymentConfig:
    return config_from_env(options.get("project_path") or getcwd(), options.get("subscription_id"))


async def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    basicConfig(format="%(asctime)s %(levelname)s %(message)s")
    log.setLevel(get_log_level())
    options = resolve_options(args)
    require(options, "name", "environment")
    if args.command != "deploy":
        require(options, "location")

    log.info("Started %s at %s", args.command, now())
    async with BotProjectDeploy(build_config(options)) as bot_deploy:
        if args.command == "create":
            success = await bot_deploy.create(
                options["name"],
                options["location"],
                options["environment"],
                options.get("app_password"),
                options.get("luis_authoring_key"),
            )
        elif args.command == "deploy":
            success = (
                await bot_deploy.deploy(
                    options["name"],
                    options["environment"],
                    options.get("luis_authoring_key"),
                    options.get("luis_authoring_region"),
                    options.get("bot_path"),
                    options.get("language"),
                )
            ).success
        else:
            success = (
                await bot_deploy.create_and_deploy(
                    options["name"],
                    options["location"],
                    options["environment"],
                    options.get("app_password"),
                    options.get("luis_authoring_key"),
                    options.get("luis_authoring_region"),
                    options.get("bot_path"),
                    options.get("language"),
                )
            ).success
    log.info("%s finished at %s", args.command, now())
    return 0 if success else 1


def cli() -> None:
    sys.exit(run(main()))


if __name__ == "__main__":  # pragma: no cover
    cli()
