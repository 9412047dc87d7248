import argparse
import asyncio
import logging
import re
import sys
from typing import List, Optional

# --- Core & utils ---
from src.utils.logger import setup_logging
from src.utils.env_utils import ConfigurationError, get_config
from src.utils.token_manager import AuthenticationError, resolve_bearer_token
from src.utils.console import ConsoleHelper

# --- Loader ---
from src.indx_loader.clients.exceptions import IndxError
from src.indx_loader.clients.indx_client import ClientSettings, IndxClient
from src.indx_loader.config.dataset_config import get_available_datasets, get_config as get_dataset_config
from src.indx_loader.orchestration.load_orchestrator import load_dataset

__version__ = "1.0.0"

logger = logging.getLogger(__name__)
console = ConsoleHelper()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="indx-loader",
        description="IndxLoader - Load and configure datasets for IndxCloudApi.",
    )
    parser.add_argument(
        "-d", "--dataset",
        help=f"Dataset to load ({' or '.join(get_available_datasets())}). "
             "If not provided, interactive mode will prompt for selection.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--list-remote", action="store_true", help="List the datasets owned by this account and exit.")
    parser.add_argument("--recreate", action="store_true", help="Delete the dataset on the server before loading it.")
    parser.add_argument("--from-database", action="store_true", help="Load from the server database instead of uploading the file.")
    parser.add_argument("--poll-interval-ms", type=int, help="Status polling interval (default from POLL_INTERVAL_MS, 100).")
    parser.add_argument("--load-timeout", type=float, help="Seconds to wait for loading; 0 waits forever.")
    parser.add_argument("--index-timeout", type=float, help="Seconds to wait for indexing; 0 waits forever.")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Override LOG_LEVEL.")
    return parser


def show_interactive_menu(datasets: List[str], input_fn=input) -> Optional[str]:
    """Numbered pick-list. Returns None when the user chooses 0 / exits."""
    console.header("Dataset Selection")
    for idx, name in enumerate(datasets, start=1):
        console.info(f"{idx}. {name}")
    console.info("0. Exit")

    while True:
        try:
            raw = input_fn("Select dataset: ").strip()
        except EOFError:
            return None
        match = re.fullmatch(r"(\d+)[.)]?", raw)
        if match:
            idx = int(match.group(1))
            if idx == 0:
                return None
            if 1 <= idx <= len(datasets):
                return datasets[idx - 1]
        elif raw.lower() in datasets:
            return raw.lower()
        console.warning(f"Please enter a number between 0 and {len(datasets)}.")


def _override_timeout(value: Optional[float], default: Optional[float]) -> Optional[float]:
    if value is None:
        return default
    return value if value > 0 else None


def select_dataset(args: argparse.Namespace) -> Optional[str]:
    """Dataset name from the flag or the pick-list; no environment or network needed."""
    dataset = args.dataset
    if not dataset and not args.list_remote:
        dataset = show_interactive_menu(get_available_datasets())
        if dataset is None:
            console.warning("No dataset selected. Exiting.")
    return dataset


async def run(args: argparse.Namespace, dataset: Optional[str]) -> int:
    config = get_config()
    if args.log_level:
        config['log_level'] = args.log_level
    setup_logging(config['log_level'])

    # requests is blocking, keep the login off the event loop
    bearer_token = await asyncio.to_thread(resolve_bearer_token, config)
    if config['auth']['email'] and not config['auth']['bearer_token']:
        console.success("Authentication successful")

    polling = config['polling']
    interval_seconds = polling['interval_seconds']
    if args.poll_interval_ms:
        interval_seconds = args.poll_interval_ms / 1000.0

    settings = ClientSettings.from_config(config, bearer_token)
    async with IndxClient(settings) as client:
        if args.list_remote:
            datasets = await client.get_user_datasets()
            console.header("Remote Datasets")
            for name in datasets:
                console.info(name)
            return 0

        report = await load_dataset(
            client,
            dataset,
            console=console,
            interval_seconds=interval_seconds,
            load_timeout_seconds=_override_timeout(args.load_timeout, polling['load_timeout_seconds']),
            index_timeout_seconds=_override_timeout(args.index_timeout, polling['index_timeout_seconds']),
            from_database=args.from_database,
            recreate=args.recreate,
        )
    return 0 if report.is_success else 1


def cli(argv: Optional[List[str]] = None) -> int:
    setup_logging('INFO')
    args = build_parser().parse_args(argv)
    try:
        dataset = select_dataset(args)
        if dataset is None and not args.list_remote:
            return 0
        if dataset and get_dataset_config(dataset) is None:
            console.error(f"Unknown dataset: {dataset}")
            console.info(f"Available datasets: {', '.join(get_available_datasets())}")
            return 1
        return asyncio.run(run(args, dataset))
    except KeyboardInterrupt:
        console.warning("Interrupted.")
        return 130
    except ConfigurationError as e:
        console.error(f"Configuration error: {e}")
        console.info("Please set API_URI and BEARER_TOKEN or USER_EMAIL and USER_PASSWORD in .env.local")
        return 1
    except AuthenticationError as e:
        console.error(str(e))
        return 1
    except IndxError as e:
        console.error(f"Request failed: {e}")
        return 1
    except Exception as e:
        logger.exception(f"💥 Fatal error: {e}")
        if e.__cause__:
            console.error(f"  Inner exception: {e.__cause__}")
        return 1


if __name__ == "__main__":
    sys.exit(cli())
