import argparse
import logging
import sys

from kubectl_explain_storage.context import build_snapshot
from kubectl_explain_storage.engine import get_default_rules
from kubectl_explain_storage.loader import load_rules
from kubectl_explain_storage.output import OutputConfig, output_result
from kubectl_explain_storage.records import Filters
from kubectl_explain_storage.report import DEFAULT_NAMESPACE, build_report

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Explain Longhorn storage capacity, health and relationships"
    )

    parser.add_argument(
        "--snapshot",
        help="Directory holding nodes/volumes/replicas/pvs/pods .json or .yaml",
    )
    parser.add_argument("--nodes", help="Path to Longhorn nodes (nodes.longhorn.io)")
    parser.add_argument("--volumes", help="Path to Longhorn volumes")
    parser.add_argument("--replicas", help="Path to Longhorn replicas")
    parser.add_argument("--pvs", help="Path to PersistentVolumes")
    parser.add_argument("--pods", help="Path to Pods (all namespaces)")

    parser.add_argument(
        "--namespace",
        default=DEFAULT_NAMESPACE,
        help="Namespace of the Longhorn resources, used in delete commands",
    )
    parser.add_argument("--node", default="", help="Filter by node name")
    parser.add_argument("--disk", default="", help="Filter by disk name")
    parser.add_argument("--volume", default="", help="Filter by volume name")
    parser.add_argument("--disktag", default="", help="Filter by disk tag")

    parser.add_argument(
        "--rules", help="Folder with additional remediation rules (.py or .yaml)"
    )
    parser.add_argument(
        "--format",
        choices=["text", "json", "yaml"],
        default="text",
        help="Output format (text, json, yaml)",
    )
    parser.add_argument("--no-replicas", action="store_true")
    parser.add_argument("--no-relationships", action="store_true")
    parser.add_argument(
        "--require-nodes",
        action="store_true",
        help="Exit with an error when the node inventory cannot be read",
    )
    parser.add_argument("--verbose", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    snapshot = build_snapshot(args)
    if args.require_nodes and "nodes" in snapshot.errors:
        logger.error("node inventory unavailable: %s", snapshot.errors["nodes"])
        return 1

    rules = list(get_default_rules())
    if args.rules:
        rules += load_rules(args.rules)

    filters = Filters(
        node=args.node, disk=args.disk, volume=args.volume, disk_tag=args.disktag
    )
    report = build_report(snapshot, filters, namespace=args.namespace, rules=rules)

    output_result(
        report,
        OutputConfig(
            fmt=args.format,
            show_replicas=not args.no_replicas,
            show_relationships=not args.no_relationships,
        ),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
