"""Routing of flat tool input into request channels."""

from __future__ import annotations

import logging
from typing import Any, Dict, Set

from .models import OperationDescriptor, ParameterLocation, RoutedParameters


logger = logging.getLogger(__name__)


def classify(operation: OperationDescriptor, flat_input: Dict[str, Any]) -> RoutedParameters:
    """Split ``flat_input`` into path, query, header and body maps.

    Declared parameters go to the channel of their declared location, so a
    key named like a path or header parameter never reaches the body. Keys
    that match no declared parameter go to the body when the operation is
    not a GET and declares a JSON body, otherwise to the query string.
    Cookie parameters are consumed without being sent.
    """
    routed = RoutedParameters()
    matched: Set[str] = set()

    for parameter in operation.parameters:
        if parameter.name not in flat_input:
            continue
        value = flat_input[parameter.name]
        matched.add(parameter.name)
        if parameter.location is ParameterLocation.PATH:
            routed.path[parameter.name] = value
        elif parameter.location is ParameterLocation.QUERY:
            routed.query[parameter.name] = value
        elif parameter.location is ParameterLocation.HEADER:
            routed.header[parameter.name] = value
        else:
            logger.warning(
                "Cookie parameter %s of %s is not sent", parameter.name, operation.operation_id
            )

    unmatched = {key: value for key, value in flat_input.items() if key not in matched}

    if operation.method.upper() != "GET" and operation.has_json_body:
        routed.body.update(unmatched)
        routed.send_body = True
    else:
        routed.query.update(unmatched)

    return routed
