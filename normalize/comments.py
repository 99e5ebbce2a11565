"""
Flatten rich-document comment trees into plain text for AI analysis.
Code blocks are dropped.
"""
from typing import Any, Dict, List


def _node_text(node: Dict[str, Any]) -> str:
    node_type = node.get("type")
    if node_type == "codeBlock":
        return ""
    if node_type == "text":
        return node.get("text") or ""
    if node.get("content"):
        return extract_text(node["content"])
    return ""


def extract_text(nodes: List[Dict[str, Any]]) -> str:
    """
    Recursively extract plain text from a list of content nodes.

    Parameters:
        nodes (List[Dict]): content nodes, each with a 'type' and optionally 'text' or 'content'.

    Returns:
        str: the text of every node joined with single spaces.
    """
    return " ".join(_node_text(node) for node in nodes or [] if isinstance(node, dict))


def extract_comments(comment_bodies: List[List[Dict[str, Any]]]) -> str:
    """Label each flattened comment as 'Comment-N: ...' and join them with spaces."""
    return " ".join(f"Comment-{index}: {extract_text(body)}" for index, body in enumerate(comment_bodies or [], start=1))
