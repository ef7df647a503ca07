"""
Graph File Loading

Reads graphs handed over by the graph preparation stage from JSON or YAML
files. The file holds a mapping with 'nodes' and 'edges' lists in the
external camelCase shape (sourceId, targetId, fixedPosition, size).
"""

import json
import logging
from pathlib import Path
from typing import Union

import yaml

from ..errors import GraphValidationError
from .abstraction import Graph

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")


def load_graph(path: Union[str, Path]) -> Graph:
    """
    Load a graph from a JSON or YAML file.

    Args:
        path: Path to a .json, .yaml or .yml file

    Returns:
        Parsed Graph (not yet validated for layout)

    Raises:
        FileNotFoundError: If the file does not exist
        GraphValidationError: If the file cannot be parsed into a graph
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Graph file not found: {path}")

    with open(path, "r") as f:
        try:
            if path.suffix.lower() in YAML_SUFFIXES:
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise GraphValidationError(f"Could not parse graph file {path}: {e}")

    graph = Graph.from_dict(data)
    logger.debug("Loaded graph from %s: %d nodes, %d edges",
                 path, len(graph.nodes), len(graph.edges))
    return graph


def save_graph(graph: Graph, path: Union[str, Path]):
    """Write a graph to JSON or YAML, chosen by file suffix."""
    path = Path(path)
    with open(path, "w") as f:
        if path.suffix.lower() in YAML_SUFFIXES:
            yaml.safe_dump(graph.to_dict(), f, sort_keys=False)
        else:
            json.dump(graph.to_dict(), f, indent=2)
