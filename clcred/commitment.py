"""
First messages of the equality and GE sub-proofs, and the Fiat-Shamir
challenge binding every sub-proof of a presentation.

The prover evaluates calc_teq/calc_tge on random blinding values, the verifier
evaluates them on the responses and divides out the challenged commitments.
Both must feed compute_c_hash the same values in the same order:
    tau_list = [t_eq(cred_1), tau_ge(cred_1, pred_1)..., t_eq(cred_2), ...]
    c_list   = [a_prime(cred_1), c_ge(cred_1, pred_1)..., a_prime(cred_2), ...]
Attribute maps are always iterated in sorted key order.
"""

from __future__ import annotations

from hashlib import sha256
from typing import Collection, Dict, List, Tuple

from petlib.bn import Bn

from . import config
from .datatypes import PrimaryInitProof, PublicKey
from .helpers import mod_pow


def calc_teq(
        pk: PublicKey,
        a_prime: Bn,
        e: Bn,
        v: Bn,
        m: Dict[str, Bn],
        m1: Bn,
        m2: Bn,
        unrevealed_attrs: Collection[str]
    ) -> Bn:
    """a_prime^e * s^v * prod(r[k]^m[k]) * rms^m1 * rctxt^m2 mod n, the product
    running over unrevealed attributes."""
    n = pk.n
    result = mod_pow(a_prime, e, n).mod_mul(mod_pow(pk.s, v, n), n)

    for name in sorted(unrevealed_attrs):
        result = result.mod_mul(mod_pow(pk.r[name], m[name], n), n)

    result = result.mod_mul(mod_pow(pk.rms, m1, n), n)
    result = result.mod_mul(mod_pow(pk.rctxt, m2, n), n)
    return result


def calc_tge(
        pk: PublicKey,
        u: Dict[str, Bn],
        r: Dict[str, Bn],
        mj: Bn,
        alpha: Bn,
        t: Dict[str, Bn]
    ) -> List[Bn]:
    """GE first messages:
        z^u[i] * s^r[i]                 for i in 0..3
        z^mj * s^r[DELTA]
        prod(t[i]^u[i]) * s^alpha
    """
    n = pk.n
    tau_list = list()

    for i in range(config.ITERATION):
        key = str(i)
        tau_list.append(mod_pow(pk.z, u[key], n).mod_mul(mod_pow(pk.s, r[key], n), n))

    tau_list.append(
        mod_pow(pk.z, mj, n).mod_mul(mod_pow(pk.s, r[config.DELTA], n), n)
    )

    q = Bn(1)
    for i in range(config.ITERATION):
        key = str(i)
        q = mod_pow(t[key], u[key], n).mod_mul(q, n)
    tau_list.append(q.mod_mul(mod_pow(pk.s, alpha, n), n))

    return tau_list


def aggregate(init_proof: PrimaryInitProof) -> Tuple[List[Bn], List[Bn]]:
    """The (c_list, tau_list) of one credential: the equality proof first,
    then GE proofs in their given order."""
    return init_proof.as_c_list(), init_proof.as_tau_list()


def compute_c_hash(c_list: List[Bn], tau_list: List[Bn], nonce: Bn) -> Bn:
    """SHA-256 over tau_list, then c_list, then the verifier's nonce. Each
    value is prefixed with the 4 byte big endian length of its encoding."""
    values = list(tau_list) + list(c_list) + [nonce]
    hasher = sha256()
    for value in values:
        data = value.binary()
        hasher.update(len(data).to_bytes(4, "big"))
        hasher.update(data)
    return Bn.from_binary(hasher.digest())
