#!/usr/bin/env python3
"""
Docker Compose Image Tag Pinning

This script finds the image in a compose file whose tag is templated with a
variable (e.g. ``image: linuxserver/calibre:${IMAGE_TAG}``), looks up the
highest ``vMAJOR.MINOR`` tag published for it, writes that tag to the
compose env file and redeploys the stack.
"""

__version__ = "1.0.0"

import json
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import argparse

import jsonschema

from envfile import read_env_value, write_env_file
from errors import TagPinError
from manifest_utils import ManifestReference, extract_repository, read_manifest
from registry import DEFAULT_MAX_PAGES, DEFAULT_PAGE_SIZE, DEFAULT_REGISTRY_URL, RegistryClient
from version_utils import select_latest


# Constants
DEFAULT_MANIFEST = "docker-compose.yml"
DEFAULT_ENV_FILE = ".env"
DEFAULT_TAG_VARIABLE = "IMAGE_TAG"
DEFAULT_COMPOSE_COMMAND = ["docker", "compose"]

# Configuration schema
CONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "tag_variable": {"type": "string", "pattern": "^[A-Za-z_][A-Za-z0-9_]*$"},
        "env_file": {"type": "string", "minLength": 1},
        "registry": {"type": "string", "minLength": 1},
        "page_size": {"type": "integer", "minimum": 1, "maximum": 100},
        "max_pages": {"type": "integer", "minimum": 1},
        "compose_command": {
            "type": "array",
            "items": {"type": "string"},
            "minItems": 1
        }
    },
    "additionalProperties": False
}


class TagPinner:
    def __init__(self, manifest_file: str, env_file: Optional[str] = None,
                 tag_variable: Optional[str] = None, config_file: Optional[str] = None,
                 registry: Optional[str] = None, page_size: Optional[int] = None,
                 max_pages: Optional[int] = None, dry_run: bool = False,
                 deploy: bool = True, log_level: str = "INFO"):
        """
        Initialize the tag pinner.

        Explicit arguments override values from the config file.

        Args:
            manifest_file: Path to the compose file
            env_file: Env file name, resolved relative to the manifest's directory
            tag_variable: Name of the variable templated into the image tag
            config_file: Optional path to JSON configuration file
            registry: Registry API base URL
            page_size: Tags requested per page
            max_pages: Maximum pages fetched before giving up
            dry_run: If True, only log the tag that would be pinned
            deploy: If False, write the env file but skip the compose call
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        self.manifest_file = Path(manifest_file)
        self.dry_run = dry_run
        self.deploy = deploy

        # Setup logging
        self.logger = self._setup_logging(log_level)

        # Load configuration
        self.config = self._load_config(config_file) if config_file else {}

        self.tag_variable = tag_variable or self.config.get('tag_variable', DEFAULT_TAG_VARIABLE)
        env_name = env_file or self.config.get('env_file', DEFAULT_ENV_FILE)
        self.env_file = self.manifest_file.parent / env_name
        if page_size is None:
            page_size = self.config.get('page_size', DEFAULT_PAGE_SIZE)
        self.page_size = page_size
        self.compose_command = self.config.get('compose_command', DEFAULT_COMPOSE_COMMAND)

        if max_pages is None:
            max_pages = self.config.get('max_pages', DEFAULT_MAX_PAGES)

        # Command line values bypass the file schema; check the merged result
        jsonschema.validate({
            'tag_variable': self.tag_variable,
            'page_size': self.page_size,
            'max_pages': max_pages,
        }, CONFIG_SCHEMA)

        self.registry = RegistryClient(
            registry or self.config.get('registry', DEFAULT_REGISTRY_URL),
            max_pages=max_pages
        )

    def _setup_logging(self, level: str) -> logging.Logger:
        """Setup logging configuration.

        The handler sits on the root logger so the registry and manifest
        module loggers share its level and format.
        """
        root = logging.getLogger()
        root.setLevel(getattr(logging, level.upper()))

        if not root.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            root.addHandler(handler)

        return logging.getLogger('TagPinner')

    def _load_config(self, config_file: str) -> Dict[str, Any]:
        """Load and validate configuration from JSON file."""
        try:
            with open(config_file, 'r') as f:
                config = json.load(f)

            # Validate against schema
            jsonschema.validate(config, CONFIG_SCHEMA)
            return config

        except FileNotFoundError:
            self.logger.error(f"Config file {config_file} not found")
            raise
        except json.JSONDecodeError as e:
            self.logger.error(f"Error parsing config file: {e}")
            raise
        except jsonschema.ValidationError as e:
            self.logger.error(f"Configuration validation failed: {e.message}")
            raise

    def build_deploy_command(self) -> List[str]:
        """Compose invocation that pulls fresh images and reconciles services."""
        return list(self.compose_command) + [
            '-f', str(self.manifest_file),
            '--env-file', str(self.env_file),
            'up', '-d', '--pull', 'always', '--remove-orphans',
        ]

    def resolve(self) -> Tuple[ManifestReference, str]:
        """Return the manifest's image and its highest vMAJOR.MINOR tag."""
        lines = read_manifest(self.manifest_file)
        reference: ManifestReference = extract_repository(lines, self.tag_variable)
        self.logger.info(f"Image for ${{{self.tag_variable}}}: {reference}")

        tags = self.registry.fetch_all_tags(reference.namespace, reference.repository,
                                            self.page_size)
        self.logger.debug(f"Registry returned {len(tags)} tags for {reference}")

        tag = select_latest(tags)
        self.logger.info(f"Latest version tag for {reference}: {tag}")
        return reference, tag

    def _run_deploy(self) -> int:
        cmd = self.build_deploy_command()
        self.logger.info(f"Running: {' '.join(cmd)}")
        try:
            result = subprocess.run(cmd)
        except OSError as e:
            self.logger.error(f"Could not start deploy command {cmd[0]}: {e}")
            return 127

        if result.returncode != 0:
            self.logger.error(f"Deploy command exited with status {result.returncode}")
        return result.returncode

    def run(self) -> int:
        """Resolve, pin and deploy. Returns the process exit code."""
        if self.dry_run:
            self.logger.info("=== DRY RUN MODE ===")

        reference, tag = self.resolve()
        image = str(reference)
        old_tag = read_env_value(self.env_file, self.tag_variable)

        if self.dry_run:
            self.logger.info(f"[DRY RUN] Would write {self.tag_variable}={tag} to {self.env_file}")
            if self.deploy:
                self.logger.info(f"[DRY RUN] Would run: {' '.join(self.build_deploy_command())}")
            return 0

        write_env_file(self.env_file, self.tag_variable, tag)
        if old_tag != tag:
            self.logger.info(f"PINNED: {image} {old_tag or 'unset'} -> {tag}")
        else:
            self.logger.info(f"{image} already pinned to {tag}")

        if not self.deploy:
            return 0

        return self._run_deploy()


def _env_int(name: str) -> Optional[int]:
    value = os.environ.get(name)
    return int(value) if value else None


def main():
    parser = argparse.ArgumentParser(
        description='Pin a compose image to its latest vMAJOR.MINOR tag and redeploy'
    )
    parser.add_argument(
        'manifest',
        nargs='?',
        default=os.environ.get('MANIFEST_FILE', DEFAULT_MANIFEST),
        help=f'Path to compose file (env: MANIFEST_FILE, default: {DEFAULT_MANIFEST})'
    )
    parser.add_argument(
        '--env-file',
        default=os.environ.get('ENV_FILE'),
        help=f"Env file name relative to the compose file's directory (env: ENV_FILE, default: {DEFAULT_ENV_FILE})"
    )
    parser.add_argument(
        '--tag-variable',
        default=os.environ.get('TAG_VARIABLE'),
        help=f'Variable templated into the image tag (env: TAG_VARIABLE, default: {DEFAULT_TAG_VARIABLE})'
    )
    parser.add_argument(
        '--config',
        default=os.environ.get('CONFIG_FILE'),
        help='Optional JSON configuration file (env: CONFIG_FILE)'
    )
    parser.add_argument(
        '--registry',
        default=os.environ.get('REGISTRY_URL'),
        help=f'Registry API base URL (env: REGISTRY_URL, default: {DEFAULT_REGISTRY_URL})'
    )
    parser.add_argument(
        '--page-size',
        type=int,
        default=_env_int('PAGE_SIZE'),
        help=f'Tags per registry page (env: PAGE_SIZE, default: {DEFAULT_PAGE_SIZE})'
    )
    parser.add_argument(
        '--max-pages',
        type=int,
        default=_env_int('MAX_PAGES'),
        help=f'Give up after this many registry pages (env: MAX_PAGES, default: {DEFAULT_MAX_PAGES})'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        default=os.environ.get('DRY_RUN', '').lower() == 'true',
        help='Resolve the tag without writing the env file or deploying (env: DRY_RUN)'
    )
    parser.add_argument(
        '--no-deploy',
        action='store_true',
        default=os.environ.get('NO_DEPLOY', '').lower() == 'true',
        help='Write the env file but do not run docker compose (env: NO_DEPLOY)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=os.environ.get('LOG_LEVEL', 'INFO'),
        help='Logging level (env: LOG_LEVEL, default: INFO)'
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    args = parser.parse_args()

    try:
        pinner = TagPinner(
            args.manifest,
            env_file=args.env_file,
            tag_variable=args.tag_variable,
            config_file=args.config,
            registry=args.registry,
            page_size=args.page_size,
            max_pages=args.max_pages,
            dry_run=args.dry_run,
            deploy=not args.no_deploy,
            log_level=args.log_level
        )
        sys.exit(pinner.run())

    except TagPinError as e:
        logging.error(f"{type(e).__name__}: {e}")
        sys.exit(1)
    except Exception as e:
        logging.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
