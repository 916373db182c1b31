"""Numerical kernels for every field and torque contribution.

Every ``add_*`` kernel adds its contribution to the destination with one
in-place addition per element.
"""

from micromag.kernels.anisotropy import add_uniaxial_anisotropy
from micromag.kernels.demag import DemagConvolution, demag_tensor
from micromag.kernels.dmi import add_dmi
from micromag.kernels.exchange import add_exchange
from micromag.kernels.torque import cross, ll_torque, max_vec_diff, max_vec_norm, normalize
from micromag.kernels.zhangli import add_zhang_li_torque

__all__ = [
    "DemagConvolution",
    "add_dmi",
    "add_exchange",
    "add_uniaxial_anisotropy",
    "add_zhang_li_torque",
    "cross",
    "demag_tensor",
    "ll_torque",
    "max_vec_diff",
    "max_vec_norm",
    "normalize",
]
