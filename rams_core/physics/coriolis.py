"""
Coriolis accelerations of the horizontal winds.

`corlos` adds the Coriolis (and, with IHTRAN = 1, curvature) terms to the
u and v tendencies. With IUVWTEND = 1 the total added by each routine is kept
in UP_CORIOLIS / VP_CORIOLIS for budget output.
"""

import dataclasses as dc

import numpy as np

from rams_core.config import Config
from rams_core.physics.budget import budget_term
from rams_core.physics.constants import erad, omega, pi180
from rams_core.physics.state import BasicState, GridGeometry, ReferenceState, Tendency, interpolate_to_heights


@dc.dataclass(frozen=True)
class CoriolisOptions:
    """The part of the configuration the Coriolis routines read."""

    icorflg: int
    ihtran: int
    initial: int
    initorig: int
    iuvwtend: int

    @classmethod
    def from_config(cls, config: Config):
        return cls(config.ICORFLG, config.IHTRAN, config.INITIAL, config.INITORIG, config.IUVWTEND)

    @property
    def reference_free(self):
        """Runs started from a history (or history-based varfiles) skip the reference-state term."""
        return self.initial == 2 or (self.initial == 3 and self.initorig == 2)

    @property
    def curvature_factor(self):
        return 1.0 / (erad * erad * 2.0) if self.ihtran else 0.0


def fcorio(glat: np.ndarray, fcoru: np.ndarray, fcorv: np.ndarray):
    """Coriolis parameter on u and v points from the latitude of t points."""
    [n2, n3] = glat.shape
    jdim = 1 if n3 > 1 else 0
    omega2 = 2.0 * omega

    I = slice(0, n2 - 1)
    J = slice(0, max(1, n3 - 1))
    fcoru[I, J] = omega2 * np.sin((glat[I, J] + glat[1:n2, J]) * 0.5 * pi180)
    fcorv[I, J] = omega2 * np.sin((glat[I, J] + glat[I, jdim:jdim + J.stop]) * 0.5 * pi180)


def corlos(basic: BasicState, tend: Tendency, geometry: GridGeometry, reference: ReferenceState, options: CoriolisOptions):
    """Coriolis driver: add the accelerations into UT and VT."""
    if options.icorflg == 0:
        return

    corlsu(basic, tend, geometry, reference, options)
    corlsv(basic, tend, geometry, reference, options)


def _domain(geometry: GridGeometry, iz: int, jz: int):
    K = slice(1, geometry.nz - 1)
    I = slice(geometry.ia, iz + 1)
    J = slice(geometry.ja, jz + 1)
    return K, I, J


def _shift(s: slice, offset: int):
    return slice(s.start + offset, s.stop + offset)


def _reference_profile(profile, geometry: GridGeometry, top, rtg, K, I, J):
    """Reference profile seen by each column: at terrain-following heights if there is terrain."""
    if geometry.itopo == 1:
        heights = geometry.zt[:, np.newaxis, np.newaxis] * rtg[np.newaxis, I, J] + top[np.newaxis, I, J]
        return interpolate_to_heights(geometry.zt, profile, heights)[K]
    return profile[K, np.newaxis, np.newaxis]


def corlsu(basic: BasicState, tend: Tendency, geometry: GridGeometry, reference: ReferenceState, options: CoriolisOptions):
    """Coriolis tendency of u."""
    up, vp, ut = basic.uc, basic.vc, tend.ut
    [K, I, J] = _domain(geometry, geometry.izu, geometry.jz)
    jdim = geometry.jdim

    # v averaged to the u points
    vt3da = 0.25 * (
        vp[K, I, J] + vp[K, I, _shift(J, -jdim)]
        + vp[K, _shift(I, 1), J] + vp[K, _shift(I, 1), _shift(J, -jdim)]
    )
    fcor = basic.fcoru[np.newaxis, I, J]
    xm = geometry.xm[_shift(I, geometry.i0)][np.newaxis, :, np.newaxis]
    yt = geometry.yt[_shift(J, geometry.j0)][np.newaxis, np.newaxis, :]
    c1 = options.curvature_factor

    with budget_term(basic.up_coriolis, options.iuvwtend >= 1) as budget:
        budget.add(ut, (K, I, J), -vt3da * (-fcor + c1 * (vt3da * xm - up[K, I, J] * yt)))

        if options.reference_free:
            return

        v01dn = _reference_profile(reference.v01dn, geometry, geometry.topu, geometry.rtgu, K, I, J)
        budget.add(ut, (K, I, J), -fcor * v01dn)


def corlsv(basic: BasicState, tend: Tendency, geometry: GridGeometry, reference: ReferenceState, options: CoriolisOptions):
    """Coriolis tendency of v."""
    up, vp, vt = basic.uc, basic.vc, tend.vt
    [K, I, J] = _domain(geometry, geometry.iz, geometry.jzv)
    jdim = geometry.jdim

    # u averaged to the v points
    vt3da = 0.25 * (
        up[K, I, J] + up[K, _shift(I, -1), J]
        + up[K, I, _shift(J, jdim)] + up[K, _shift(I, -1), _shift(J, jdim)]
    )
    fcor = basic.fcorv[np.newaxis, I, J]
    xt = geometry.xt[_shift(I, geometry.i0)][np.newaxis, :, np.newaxis]
    ym = geometry.ym[_shift(J, geometry.j0)][np.newaxis, np.newaxis, :]
    c1 = options.curvature_factor

    with budget_term(basic.vp_coriolis, options.iuvwtend >= 1) as budget:
        budget.add(vt, (K, I, J), -vt3da * (fcor - c1 * (vp[K, I, J] * xt - vt3da * ym)))

        if options.reference_free:
            return

        u01dn = _reference_profile(reference.u01dn, geometry, geometry.topv, geometry.rtgv, K, I, J)
        budget.add(vt, (K, I, J), fcor * u01dn)
