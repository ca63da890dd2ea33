"""Command line of the Doodba operator.

    doodba-operator crd            print the CustomResourceDefinition
    doodba-operator run [-n ns]    run the controller until signalled
"""

import asyncio
import logging
import sys
import threading
import click
import kopf
import yaml
from typing import Tuple
from kubernetes_asyncio import config
from kubernetes_asyncio.client.api_client import ApiClient

# Importing the app registers every kopf handler
from doodba import __version__
from doodba.app import Shutdown, load_config
from doodba.store import DOODBA, KubernetesObjectStore
from doodba.types.crd import custom_resource_definition
from doodba.utils.errors import DoodbaError

logger = logging.getLogger(__name__)


async def verify_crd() -> None:
    """Raise unless Doodbas can be listed from the cluster."""
    await load_config(logger)
    async with ApiClient() as api_client:
        store = KubernetesObjectStore(api_client)
        await store.list(DOODBA, limit=1)


@click.group()
@click.version_option(__version__, prog_name="doodba-operator")
def main() -> None:
    """Kubernetes operator for Doodba (Odoo) deployments."""


@main.command()
def crd() -> None:
    """Print the Doodba CustomResourceDefinition as YAML."""
    click.echo(yaml.safe_dump(custom_resource_definition(), sort_keys=False), nl=False)


@main.command()
@click.option("-n", "--namespace", "namespaces", multiple=True)
@click.option("-A", "--all-namespaces", "clusterwide", is_flag=True)
@click.option("--standalone", is_flag=True, default=None)
@click.option("--liveness", "liveness_endpoint", type=str, default=None)
@click.option("-v", "--verbose", is_flag=True)
@click.option("-d", "--debug", is_flag=True)
def run(
    namespaces: Tuple[str, ...],
    clusterwide: bool,
    standalone: bool,
    liveness_endpoint: str,
    verbose: bool,
    debug: bool,
) -> None:
    """Run the controller until terminated by a signal."""
    kopf.configure(verbose=verbose, debug=debug)

    try:
        asyncio.run(verify_crd())
    except (DoodbaError, config.ConfigException) as ex:
        logger.critical(f"Doodba resource kind is not queryable: {ex}")
        sys.exit(1)

    stop_flag = threading.Event()
    shutdown = Shutdown(stop_flag)
    kopf.run(
        clusterwide=clusterwide,
        namespaces=namespaces,
        standalone=standalone,
        liveness_endpoint=liveness_endpoint,
        memo=kopf.Memo(shutdown=shutdown),
        stop_flag=stop_flag,
    )
    if shutdown.aborted:
        logger.critical(f"Operator aborted: {shutdown.reason}")
        sys.exit(1)
