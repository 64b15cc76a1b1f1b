from __future__ import annotations

from ..request import PageRequest, RequestSearchContext

FIELD_PREFIX = "field."
FIELD_PREFIX_NOSTRING = "fieldNoString."


def get_search_query(ctx: RequestSearchContext, request: PageRequest) -> str:
    """Assemble the query text of a request.

    The free-text `query` values come first, joined by single spaces. Then,
    in the order the parameters were supplied, every non-blank `field.<name>`
    adds ` <name>:"<value>"` and every non-blank `fieldNoString.<name>` adds
    ` <name>:<value>` (values such as ranges are passed through verbatim).
    """
    if ctx.query is None:
        parts = [" ".join(request.get_parameters_not_null("query"))]

        for param_name in request.get_parameter_names():
            if param_name.startswith(FIELD_PREFIX):
                field_name = param_name[len(FIELD_PREFIX):]
                value = (request.get_parameter(param_name) or "").strip()
                if value:
                    parts.append(f'{field_name}:"{value}"')
            elif param_name.startswith(FIELD_PREFIX_NOSTRING):
                field_name = param_name[len(FIELD_PREFIX_NOSTRING):]
                value = (request.get_parameter(param_name) or "").strip()
                if value:
                    parts.append(f"{field_name}:{value}")

        ctx.query = " ".join(parts).strip()
    return ctx.query
