"""Essential (Dirichlet) boundary condition application."""
from __future__ import annotations

import logging
from typing import Sequence

from linear_deformation.fea.config import EssentialBC
from linear_deformation.fea.fields import NodalField

logger = logging.getLogger(__name__)


def apply_essential_bcs(
    u: NodalField, geom: NodalField, bcs: Sequence[EssentialBC]
) -> NodalField:
    """Fix the entries named by ``bcs`` and record their prescribed values.

    Each record fixes ``component`` (or every component for ``"all"``) of
    the listed nodes.  A constant displacement is broadcast; a function is
    evaluated at each node's coordinates and its first component used.
    With no records every entry stays free.

    The field is finalised (:meth:`NodalField.apply_ebc`) after all records
    have been applied but is *not* numbered.

    Returns
    -------
    NodalField
        ``u``, modified in place.
    """
    if not bcs:
        logger.debug("No essential boundary conditions; all DOFs free")
        return u

    for bc in bcs:
        u.set_ebc(
            bc.node_list,
            component=bc.component,
            values=bc.prescribed_values(geom),
            is_fixed=True,
        )
    u.apply_ebc()
    logger.info(
        "Applied %d essential BC record(s): %d of %d entries fixed",
        len(bcs),
        int(u.is_fixed.sum()),
        u.values.size,
    )
    return u
