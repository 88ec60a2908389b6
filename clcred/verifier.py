"""
Verifier side of CL credentials.

The verifier rebuilds each sub-proof's first message from its responses and
the challenge:
    t_eq   = calc_teq(responses) * (z / (a_prime^(2^596) * prod(r[k]^m[k])))^-c
    tau_ge = calc_tge(responses) * (challenged commitments)^-c
then hashes them with the commitments and its nonce in the prover's order.
The proof is accepted iff the hash equals c_hash. The product over revealed
attributes is how the disclosed values are bound to the challenge; they are
not hashed directly.

A false or malformed proof is rejected with False. Errors are only raised
when the big number library fails.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, List, Mapping

from petlib.bn import Bn

from . import config
from .commitment import calc_teq, calc_tge, compute_c_hash
from .datatypes import (
    FullProof,
    PrimaryEqualProof,
    PrimaryPredicateGEProof,
    ProofInput,
    PublicKey,
    SchemaKey,
)
from .helpers import bn_from_int, bn_rand, mod_div, mod_pow


logger = logging.getLogger(__name__)

GE_KEYS = [str(i) for i in range(config.ITERATION)]


def check_eq_proof(pk: PublicKey, proof: PrimaryEqualProof, revealed_attr_values: Mapping[str, Bn]) -> bool:
    """Local consistency of an equality proof with the key and the disclosed
    values."""
    revealed = set(revealed_attr_values)
    if set(proof.revealed_attr_names) != revealed:
        logger.debug("Revealed attribute names do not match the disclosed values")
        return False
    if not revealed <= set(pk.r):
        logger.debug("Revealed attributes %s are not in the key", sorted(revealed - set(pk.r)))
        return False
    if set(proof.m) != set(pk.r) - revealed:
        logger.debug("Equality proof does not cover the unrevealed attributes")
        return False
    if not (0 < proof.a_prime < pk.n):
        logger.debug("a_prime is out of range")
        return False
    return True


def calc_eq_tau(
        pk: PublicKey,
        proof: PrimaryEqualProof,
        c_hash: Bn,
        revealed_attr_values: Mapping[str, Bn]
    ) -> List[Bn]:
    """The equality proof's contribution to the tau list."""
    n = pk.n
    t1 = calc_teq(pk, proof.a_prime, proof.e, proof.v, proof.m, proof.m1, proof.m2, proof.m)

    rar = mod_pow(proof.a_prime, Bn(2).pow(config.LARGE_E_START), n)
    for name in sorted(revealed_attr_values):
        rar = rar.mod_mul(mod_pow(pk.r[name], revealed_attr_values[name], n), n)

    t2 = mod_pow(mod_div(pk.z, rar, n), -c_hash, n)
    return [t1.mod_mul(t2, n)]


def verify_eq_proof(
        pk: PublicKey,
        proof: PrimaryEqualProof,
        c_hash: Bn,
        revealed_attr_values: Mapping[str, Bn],
        nonce: Bn
    ) -> bool:
    """Verify a proof made of a single equality sub-proof, i.e. a credential
    presented without predicates.

    Args:
        pk (PublicKey): issuer's public key
        proof (PrimaryEqualProof): the proof
        c_hash (Bn): the challenge the proof answers
        revealed_attr_values (Dict[str, Bn]): encoded disclosed values
        nonce (Bn): verifier's nonce
    Returns:
        boolean: pass/fail
    """
    if not check_eq_proof(pk, proof, revealed_attr_values):
        return False
    tau_list = calc_eq_tau(pk, proof, c_hash, revealed_attr_values)
    return compute_c_hash([proof.a_prime], tau_list, nonce) == c_hash


def calc_ge_tau(pk: PublicKey, proof: PrimaryPredicateGEProof, c_hash: Bn) -> List[Bn]:
    """The GE proof's contribution to the tau list."""
    n = pk.n
    tau_list = calc_tge(pk, proof.u, proof.r, proof.mj, proof.alpha, proof.t)

    for i, key in enumerate(GE_KEYS):
        challenged = mod_pow(proof.t[key], -c_hash, n)
        tau_list[i] = challenged.mod_mul(tau_list[i], n)

    delta = proof.t[config.DELTA]
    threshold = bn_from_int(proof.predicate.value)
    challenged = mod_pow(mod_pow(pk.z, threshold, n).mod_mul(delta, n), -c_hash, n)
    tau_list[config.ITERATION] = challenged.mod_mul(tau_list[config.ITERATION], n)

    challenged = mod_pow(delta, -c_hash, n)
    tau_list[config.ITERATION + 1] = challenged.mod_mul(tau_list[config.ITERATION + 1], n)
    return tau_list


def ge_c_list(proof: PrimaryPredicateGEProof) -> List[Bn]:
    """The GE proof's commitments, in hashing order."""
    return [proof.t[key] for key in GE_KEYS] + [proof.t[config.DELTA]]


def check_ge_proof(pk: PublicKey, proof: PrimaryPredicateGEProof, eq_proof: PrimaryEqualProof) -> bool:
    """Local consistency of a GE proof, including its link to the equality
    proof of the same credential."""
    predicate = proof.predicate
    if predicate.p_type != config.PREDICATE_GE:
        logger.debug("Unsupported predicate type %r", predicate.p_type)
        return False
    if isinstance(predicate.value, bool) or not isinstance(predicate.value, int):
        logger.debug("GE proof on %r has a non integer threshold", predicate.attr_name)
        return False
    if set(proof.u) != set(GE_KEYS):
        logger.debug("GE proof on %r has malformed u", predicate.attr_name)
        return False
    if set(proof.r) != set(GE_KEYS + [config.DELTA]) or set(proof.t) != set(proof.r):
        logger.debug("GE proof on %r has malformed r or t", predicate.attr_name)
        return False
    if any(not (0 < value < pk.n) for value in proof.t.values()):
        logger.debug("GE proof on %r has commitments out of range", predicate.attr_name)
        return False
    if predicate.attr_name not in eq_proof.m:
        logger.debug("GE proof on %r is not linked to a hidden attribute", predicate.attr_name)
        return False
    if proof.mj != eq_proof.m[predicate.attr_name]:
        logger.debug("GE proof on %r does not match the equality proof", predicate.attr_name)
        return False
    return True


def verify_ge_proof(
        pk: PublicKey,
        proof: PrimaryPredicateGEProof,
        c_hash: Bn,
        eq_proof: PrimaryEqualProof,
        revealed_attr_values: Mapping[str, Bn],
        nonce: Bn
    ) -> bool:
    """Verify a credential presented with one GE predicate: eq_proof followed
    by proof, both answering c_hash.

    Every first message is rebuilt from the responses and c_hash, and hashed
    with the commitments and the nonce.

    Args:
        pk (PublicKey): issuer's public key
        proof (PrimaryPredicateGEProof): the GE proof
        c_hash (Bn): the challenge both sub-proofs answer
        eq_proof (PrimaryEqualProof): equality proof of the same credential
        revealed_attr_values (Dict[str, Bn]): encoded disclosed values
        nonce (Bn): verifier's nonce
    Returns:
        boolean: pass/fail
    """
    if not check_eq_proof(pk, eq_proof, revealed_attr_values):
        return False
    if not check_ge_proof(pk, proof, eq_proof):
        return False

    c_list = [eq_proof.a_prime] + ge_c_list(proof)
    tau_list = calc_eq_tau(pk, eq_proof, c_hash, revealed_attr_values)
    tau_list.extend(calc_ge_tau(pk, proof, c_hash))
    return compute_c_hash(c_list, tau_list, nonce) == c_hash


def verify_full_proof(
        public_keys: Mapping[SchemaKey, PublicKey],
        full_proof: FullProof,
        proof_input: ProofInput,
        nonce: Bn
    ) -> bool:
    """Verify a presentation against a request.

    Every sub-proof is checked for consistency and matched against the request
    before any first message is rebuilt.

    Args:
        public_keys (Dict[SchemaKey, PublicKey]): trusted issuers' keys
        full_proof (FullProof): the presentation
        proof_input (ProofInput): the request it answers
        nonce (Bn): the nonce sent with the request
    Returns:
        boolean: pass/fail
    """
    count = len(full_proof.schema_keys)
    if count != len(full_proof.proofs) or count != len(full_proof.revealed_attrs):
        logger.debug("Proof has inconsistent lengths")
        return False

    entries = list(zip(full_proof.schema_keys, full_proof.proofs, full_proof.revealed_attrs))
    disclosed = set()
    proved = list()
    for key, proof, revealed in entries:
        pk = public_keys.get(key)
        if pk is None:
            logger.debug("No public key for %s", key)
            return False

        eq_proof = proof.primary_proof.eq_proof
        if not check_eq_proof(pk, eq_proof, revealed):
            return False
        disclosed.update(revealed)

        for ge_proof in proof.primary_proof.ge_proofs:
            if not check_ge_proof(pk, ge_proof, eq_proof):
                return False
            proved.append(ge_proof.predicate)

    if disclosed != set(proof_input.revealed_attrs):
        logger.debug("Disclosed attributes do not match the request")
        return False
    if Counter(proved) != Counter(proof_input.predicates):
        logger.debug("Proved predicates do not match the request")
        return False

    c_hash = full_proof.c_hash
    c_list = list()
    tau_list = list()
    for key, proof, revealed in entries:
        pk = public_keys[key]
        eq_proof = proof.primary_proof.eq_proof
        c_list.append(eq_proof.a_prime)
        tau_list.extend(calc_eq_tau(pk, eq_proof, c_hash, revealed))
        for ge_proof in proof.primary_proof.ge_proofs:
            c_list.extend(ge_c_list(ge_proof))
            tau_list.extend(calc_ge_tau(pk, ge_proof, c_hash))

    if c_list != full_proof.c_list:
        logger.debug("Commitment list does not match the proofs")
        return False

    if compute_c_hash(c_list, tau_list, nonce) != c_hash:
        logger.debug("Challenge mismatch")
        return False
    return True


class Verifier:
    """Checks presentations against the issuers' public keys.

    Attributes:
        public_keys (Dict[SchemaKey, PublicKey]): trusted issuers' keys
    """

    __slots__ = ("public_keys",)

    def __init__(self, public_keys: Dict[SchemaKey, PublicKey]):
        self.public_keys = public_keys

    @staticmethod
    def generate_nonce() -> Bn:
        return bn_rand(config.LARGE_NONCE)

    def verify(self, full_proof: FullProof, proof_input: ProofInput, nonce: Bn) -> bool:
        return verify_full_proof(self.public_keys, full_proof, proof_input, nonce)
