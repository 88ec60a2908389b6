"""
Holder side of CL credentials: blinded issuance requests and presentation
proofs.

A presentation runs in two phases for every credential:
1. Commit: init_eq_proof proves knowledge of the signature and hidden
   attributes, init_ge_proof proves attribute >= threshold for each predicate.
2. Respond: a single challenge c_hash is hashed from every sub-proof's
   commitments (build_full_proof) and each sub-proof answers it once.

An init proof that already responded refuses a second challenge.

Example:
    >>> from clcred.issuer import Issuer
    >>> schema = Schema("degree", "1.0", {"age", "name"})
    >>> issuer = Issuer.new(schema, prime_bits=256)
    >>> prover = Prover()
    >>> init_data = prover.create_claim_init_data(issuer.public)
    >>> request = prover.create_claim_request("alice", init_data)
    >>> attributes = [Attribute("age", "25", False), Attribute("name", "Alex", True)]
    >>> claim = issuer.issue_primary_claim(request, Attribute.encode_all(attributes))
    >>> claims = Claims(claim)
    >>> prover.process_claim(issuer.public, claims, init_data)

    >>> key = schema.key("issuer1")
    >>> proof_input = ProofInput({"name"}, [Predicate("age", "GE", 18)])
    >>> nonce = Bn(1234)
    >>> proof = prover.present_proof(proof_input, {key: claims}, {key: issuer.public}, nonce)
    >>> len(proof.proofs), len(proof.c_list)
    (1, 6)
"""

from __future__ import annotations

import logging
from typing import Collection, Dict, Mapping, Optional, Sequence

from petlib.bn import Bn

from . import config
from .commitment import aggregate, calc_teq, calc_tge, compute_c_hash
from .datatypes import (
    Attribute,
    ClaimInitData,
    ClaimRequest,
    Claims,
    FullProof,
    InitProof,
    Predicate,
    PrimaryClaim,
    PrimaryEqualInitProof,
    PrimaryEqualProof,
    PrimaryInitProof,
    PrimaryPredicateGEInitProof,
    PrimaryPredicateGEProof,
    PrimaryProof,
    Proof,
    ProofClaims,
    ProofInput,
    ProofState,
    PublicKey,
    Schema,
    SchemaKey,
)
from .errors import CryptoInvalidData, CryptoInvalidState
from .helpers import bn_from_int, bn_rand, four_squares, mod_pow


logger = logging.getLogger(__name__)


def _respond(init_proof) -> None:
    if init_proof.state != ProofState.COMMITTED:
        raise CryptoInvalidState("The sub-proof already responded to a challenge.")
    init_proof.state = ProofState.RESPONDED


def verify_primary_claim(pk: PublicKey, claim: PrimaryClaim, master_secret: Bn) -> bool:
    """Checks a^e * s^v * rms^ms * rctxt^m2 * prod(r[k]^m[k]) == z mod n on an
    updated claim."""
    n = pk.n
    e_start = Bn(2).pow(config.LARGE_E_START)
    e_end = e_start + Bn(2).pow(config.LARGE_E_END_RANGE)
    if not (e_start <= claim.e < e_end and claim.e.is_prime()):
        return False
    if set(claim.encoded_attributes) != set(pk.r):
        return False

    rhs = mod_pow(claim.a, claim.e, n).mod_mul(mod_pow(pk.s, claim.v_prime, n), n)
    rhs = rhs.mod_mul(mod_pow(pk.rms, master_secret, n), n)
    rhs = rhs.mod_mul(mod_pow(pk.rctxt, claim.m2, n), n)
    for name in sorted(claim.encoded_attributes):
        rhs = rhs.mod_mul(mod_pow(pk.r[name], claim.encoded_attributes[name], n), n)
    return rhs == pk.z


def init_eq_proof(
        pk: PublicKey,
        claim: PrimaryClaim,
        revealed: Collection[str],
        unrevealed: Collection[str],
        master_secret: Bn
    ) -> PrimaryEqualInitProof:
    """Commitment phase of the equality proof.

    Errors:
        CryptoInvalidData: revealed and unrevealed overlap or do not partition
            the claim's attributes.
        CryptoInvalidState: the claim was not updated by its holder.
    """
    revealed = set(revealed)
    unrevealed = set(unrevealed)
    if revealed & unrevealed:
        raise CryptoInvalidData(
            f"Attributes {sorted(revealed & unrevealed)} are both revealed and unrevealed."
        )
    if revealed | unrevealed != set(claim.encoded_attributes):
        raise CryptoInvalidData("Revealed and unrevealed attributes must cover the claim.")
    if not set(unrevealed) <= set(pk.r):
        raise CryptoInvalidData("The public key does not match the claim's attributes.")
    if not claim.finalized:
        raise CryptoInvalidState("The claim's v_prime was not updated by its holder.")

    n = pk.n
    m1_tilde = bn_rand(config.LARGE_MVECT)
    r = bn_rand(config.LARGE_VPRIME)
    etilde = bn_rand(config.LARGE_ETILDE)
    vtilde = bn_rand(config.LARGE_VTILDE)
    mtilde = {name: bn_rand(config.LARGE_MVECT) for name in sorted(unrevealed)}
    m2_tilde = bn_rand(config.LARGE_MVECT)

    a_prime = claim.a.mod_mul(mod_pow(pk.s, r, n), n)
    vprime = claim.v_prime - claim.e * r
    eprime = claim.e - Bn(2).pow(config.LARGE_E_START)

    t = calc_teq(pk, a_prime, etilde, vtilde, mtilde, m1_tilde, m2_tilde, unrevealed)

    return PrimaryEqualInitProof(
        a_prime=a_prime,
        t=t,
        etilde=etilde,
        eprime=eprime,
        vtilde=vtilde,
        vprime=vprime,
        mtilde=mtilde,
        m1_tilde=m1_tilde,
        m2_tilde=m2_tilde,
        unrevealed_attrs=unrevealed,
        revealed_attrs=revealed,
        encoded_attributes=dict(claim.encoded_attributes),
        m1=master_secret,
        m2=claim.m2,
    )


def finalize_eq_proof(init_proof: PrimaryEqualInitProof, c_hash: Bn) -> PrimaryEqualProof:
    """Response phase of the equality proof.

    Errors:
        CryptoInvalidState: init_proof already responded.
    """
    _respond(init_proof)

    e = init_proof.etilde + c_hash * init_proof.eprime
    v = init_proof.vtilde + c_hash * init_proof.vprime
    m = {
        name: init_proof.mtilde[name] + c_hash * init_proof.encoded_attributes[name]
        for name in sorted(init_proof.unrevealed_attrs)
    }
    m1 = init_proof.m1_tilde + c_hash * init_proof.m1
    m2 = init_proof.m2_tilde + c_hash * init_proof.m2

    return PrimaryEqualProof(
        revealed_attr_names=init_proof.revealed_attrs,
        a_prime=init_proof.a_prime,
        e=e,
        v=v,
        m=m,
        m1=m1,
        m2=m2,
    )


def init_ge_proof(
        pk: PublicKey,
        predicate: Predicate,
        eq_init_proof: PrimaryEqualInitProof
    ) -> PrimaryPredicateGEInitProof:
    """Commitment phase of a GE proof on one unrevealed attribute.

    delta = m[attr] - threshold is decomposed into four squares u_i, each
    committed as t_i = z^u_i * s^r_i, with t_DELTA = z^delta * s^r_DELTA.
    The proof reuses the equality proof's blinding of m[attr], which ties the
    predicate to the signed attribute.

    Errors:
        CryptoInvalidData: unsupported predicate type, attribute not hidden in
            eq_init_proof, or the predicate is false (delta < 0).
    """
    if predicate.p_type != config.PREDICATE_GE:
        raise CryptoInvalidData(f"Unsupported predicate type {predicate.p_type!r}.")
    if predicate.attr_name not in eq_init_proof.unrevealed_attrs:
        raise CryptoInvalidData(
            f"Predicate attribute {predicate.attr_name!r} is not an unrevealed attribute."
        )

    n = pk.n
    delta = eq_init_proof.encoded_attributes[predicate.attr_name] - bn_from_int(predicate.value)
    if delta < 0:
        raise CryptoInvalidData(f"Predicate on {predicate.attr_name!r} is not satisfied.")

    u = dict()
    r = dict()
    t = dict()
    c_list = list()
    for i, square_root in enumerate(four_squares(int(delta))):
        key = str(i)
        u[key] = bn_from_int(square_root)
        r[key] = bn_rand(config.LARGE_VPRIME)
        t[key] = mod_pow(pk.z, u[key], n).mod_mul(mod_pow(pk.s, r[key], n), n)
        c_list.append(t[key])

    r[config.DELTA] = bn_rand(config.LARGE_VPRIME)
    t[config.DELTA] = mod_pow(pk.z, delta, n).mod_mul(mod_pow(pk.s, r[config.DELTA], n), n)
    c_list.append(t[config.DELTA])

    u_tilde = dict()
    r_tilde = dict()
    for i in range(config.ITERATION):
        key = str(i)
        u_tilde[key] = bn_rand(config.LARGE_UTILDE)
        r_tilde[key] = bn_rand(config.LARGE_RTILDE)
    r_tilde[config.DELTA] = bn_rand(config.LARGE_RTILDE)
    alpha_tilde = bn_rand(config.LARGE_ALPHATILDE)

    mj = eq_init_proof.mtilde[predicate.attr_name]
    tau_list = calc_tge(pk, u_tilde, r_tilde, mj, alpha_tilde, t)

    return PrimaryPredicateGEInitProof(
        c_list=c_list,
        tau_list=tau_list,
        u=u,
        u_tilde=u_tilde,
        r=r,
        r_tilde=r_tilde,
        alpha_tilde=alpha_tilde,
        predicate=predicate,
        t=t,
    )


def finalize_ge_proof(
        init_proof: PrimaryPredicateGEInitProof,
        c_hash: Bn,
        eq_proof: PrimaryEqualProof
    ) -> PrimaryPredicateGEProof:
    """Response phase of a GE proof. mj is the equality proof's response for
    the predicate attribute.

    Errors:
        CryptoInvalidState: init_proof already responded.
    """
    _respond(init_proof)

    u = dict()
    r = dict()
    urproduct = Bn(0)
    for i in range(config.ITERATION):
        key = str(i)
        u[key] = init_proof.u_tilde[key] + c_hash * init_proof.u[key]
        r[key] = init_proof.r_tilde[key] + c_hash * init_proof.r[key]
        urproduct = urproduct + init_proof.u[key] * init_proof.r[key]

    r[config.DELTA] = init_proof.r_tilde[config.DELTA] + c_hash * init_proof.r[config.DELTA]
    alpha = init_proof.alpha_tilde + c_hash * (init_proof.r[config.DELTA] - urproduct)

    return PrimaryPredicateGEProof(
        u=u,
        r=r,
        mj=eq_proof.m[init_proof.predicate.attr_name],
        alpha=alpha,
        t=dict(init_proof.t),
        predicate=init_proof.predicate,
    )


def build_full_proof(
        init_proofs: Sequence[InitProof],
        schema_keys: Sequence[SchemaKey],
        nonce: Bn
    ) -> FullProof:
    """Hash every sub-proof's commitments into one challenge and respond.

    Args:
        init_proofs (InitProof[]): committed proofs, one per credential
        schema_keys (SchemaKey[]): credential of each init proof, same order
        nonce (Bn): the verifier's nonce
    Returns:
        FullProof
    """
    if len(init_proofs) != len(schema_keys):
        raise CryptoInvalidData("Each init proof needs exactly one schema key.")

    c_list = list()
    tau_list = list()
    for init_proof in init_proofs:
        cur_c_list, cur_tau_list = aggregate(init_proof.primary_init_proof)
        c_list.extend(cur_c_list)
        tau_list.extend(cur_tau_list)

    c_hash = compute_c_hash(c_list, tau_list, nonce)

    proofs = list()
    revealed_attrs = list()
    for init_proof in init_proofs:
        primary = init_proof.primary_init_proof
        eq_proof = finalize_eq_proof(primary.eq_proof, c_hash)
        ge_proofs = [
            finalize_ge_proof(ge_proof, c_hash, eq_proof)
            for ge_proof in primary.ge_proofs
        ]
        proofs.append(Proof(PrimaryProof(eq_proof, ge_proofs)))
        revealed_attrs.append({
            name: primary.eq_proof.encoded_attributes[name]
            for name in sorted(primary.eq_proof.revealed_attrs)
        })

    return FullProof(
        c_hash=c_hash,
        schema_keys=list(schema_keys),
        proofs=proofs,
        c_list=c_list,
        revealed_attrs=revealed_attrs,
    )


def find_claims(proof_input: ProofInput, claims: Mapping[SchemaKey, Claims]) -> Dict[SchemaKey, ProofClaims]:
    """Bind every revealed attribute and predicate of a request to a claim.

    Attributes go to the first claim carrying them, in sorted schema key order.

    Errors:
        CryptoInvalidData: no claim carries a requested attribute, or the
            request asks for nothing.
    """
    if not proof_input.revealed_attrs and not proof_input.predicates:
        raise CryptoInvalidData("The proof request is empty.")

    def owner(attr_name: str) -> SchemaKey:
        for key in sorted(claims):
            if attr_name in claims[key].primary_claim.encoded_attributes:
                return key
        raise CryptoInvalidData(f"No claim has attribute {attr_name!r}.")

    found = dict()
    for attr_name in sorted(proof_input.revealed_attrs):
        key = owner(attr_name)
        found.setdefault(key, ProofClaims(claims[key], set(), list())).revealed_attrs.add(attr_name)
    for predicate in proof_input.predicates:
        key = owner(predicate.attr_name)
        found.setdefault(key, ProofClaims(claims[key], set(), list())).predicates.append(predicate)
    return found


class Prover:
    """A credential holder.

    Attributes:
        master_secret (Bn): the link secret, m1, shared by all the holder's
            claims
    """

    __slots__ = ("master_secret",)

    def __init__(self, master_secret: Optional[Bn] = None):
        if master_secret is None:
            master_secret = bn_rand(config.LARGE_MASTER_SECRET)
        self.master_secret = master_secret

    def create_claim_init_data(self, pk: PublicKey) -> ClaimInitData:
        """u = s^v_prime * rms^master_secret mod n"""
        v_prime = bn_rand(config.LARGE_VPRIME)
        u = mod_pow(pk.s, v_prime, pk.n).mod_mul(mod_pow(pk.rms, self.master_secret, pk.n), pk.n)
        return ClaimInitData(u=u, v_prime=v_prime)

    def create_claim_request(self, user_id: str, init_data: ClaimInitData) -> ClaimRequest:
        return ClaimRequest(user_id=user_id, u=init_data.u)

    def process_claim(self, pk: PublicKey, claims: Claims, init_data: ClaimInitData) -> None:
        """Complete the issuer's signature with the holder's v_prime.

        Errors:
            CryptoInvalidState: the claim was already processed.
            CryptoInvalidData: the completed signature is invalid.
        """
        claims.prepare_primary_claim(init_data.v_prime)
        if not verify_primary_claim(pk, claims.primary_claim, self.master_secret):
            raise CryptoInvalidData("The issued claim's signature is invalid.")

    def init_proof(self, pk: PublicKey, proof_claims: ProofClaims) -> InitProof:
        claim = proof_claims.claims.primary_claim
        revealed = set(proof_claims.revealed_attrs)
        unrevealed = set(claim.encoded_attributes) - revealed

        eq_proof = init_eq_proof(pk, claim, revealed, unrevealed, self.master_secret)
        ge_proofs = [
            init_ge_proof(pk, predicate, eq_proof)
            for predicate in proof_claims.predicates
        ]
        return InitProof(PrimaryInitProof(eq_proof, ge_proofs))

    def present_proof(
            self,
            proof_input: ProofInput,
            claims: Mapping[SchemaKey, Claims],
            public_keys: Mapping[SchemaKey, PublicKey],
            nonce: Bn
        ) -> FullProof:
        """Build a FullProof answering proof_input.

        Args:
            proof_input (ProofInput): the verifier's request
            claims (Dict[SchemaKey, Claims]): holder's processed claims
            public_keys (Dict[SchemaKey, PublicKey]): issuers' public keys
            nonce (Bn): the verifier's nonce
        """
        proof_claims = find_claims(proof_input, claims)
        schema_keys = sorted(proof_claims)
        init_proofs = [
            self.init_proof(public_keys[key], proof_claims[key])
            for key in schema_keys
        ]
        logger.debug(
            "Building proof over %d claims, %d revealed attributes, %d predicates",
            len(schema_keys), len(proof_input.revealed_attrs), len(proof_input.predicates)
        )
        return build_full_proof(init_proofs, schema_keys, nonce)


def main():
    import doctest
    doctest.testmod(verbose=True)


if __name__ == "__main__":
    main()
