"""
Data model of CL credentials.

Keys and schemas are shared and read only. A PrimaryClaim is mutated once by
its holder (update_vprime). Init proofs hold the commitment phase of a
presentation and are never sent; Proof and FullProof are the transmissible
response phase.

Map valued fields (attribute name -> value) have no meaningful order. Every
place where such a map feeds a hash or a commitment list iterates it in
sorted key order.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Dict, List, Optional, Set

import attr
from petlib.bn import Bn

from .errors import CryptoInvalidState
from .helpers import encode_attribute


class ProofState(IntEnum):
    """State of a sub-proof: committed, or responded to a challenge."""
    COMMITTED = 0
    RESPONDED = 1


@attr.s(slots=True, frozen=True)
class SchemaKey:
    name = attr.ib()      # type: str
    version = attr.ib()   # type: str
    issuer_id = attr.ib() # type: str


@attr.s(slots=True, frozen=True)
class Schema:
    """A credential type and the names of its attributes."""
    name = attr.ib()                                        # type: str
    version = attr.ib()                                     # type: str
    attribute_names = attr.ib(converter=frozenset)          # type: frozenset

    def key(self, issuer_id: str) -> SchemaKey:
        return SchemaKey(self.name, self.version, issuer_id)


@attr.s(slots=True)
class PublicKey:
    """Issuer's CL public key. r holds one base per schema attribute."""
    n = attr.ib()      # type: Bn
    s = attr.ib()      # type: Bn
    rms = attr.ib()    # type: Bn
    r = attr.ib()      # type: Dict[str, Bn]
    rctxt = attr.ib()  # type: Bn
    z = attr.ib()      # type: Bn


@attr.s(slots=True)
class Attribute:
    name = attr.ib()    # type: str
    value = attr.ib()   # type: str
    encode = attr.ib()  # type: bool

    def encoded(self) -> Bn:
        return encode_attribute(self.value, self.encode)

    @staticmethod
    def encode_all(attributes: List[Attribute]) -> Dict[str, Bn]:
        return {attribute.name: attribute.encoded() for attribute in attributes}


@attr.s(slots=True, frozen=True)
class Predicate:
    """attr_name p_type value, e.g. age GE 18."""
    attr_name = attr.ib() # type: str
    p_type = attr.ib()    # type: str
    value = attr.ib(converter=int) # type: int


@attr.s(slots=True)
class ClaimRequest:
    user_id = attr.ib() # type: str
    u = attr.ib()       # type: Bn


@attr.s(slots=True)
class ClaimInitData:
    u = attr.ib()       # type: Bn
    v_prime = attr.ib() # type: Bn


@attr.s(slots=True)
class PrimaryClaim:
    """A CL signature (a, e, v_prime) on encoded_attributes and m2.

    The issuer's v_prime is only part of the signature exponent. The holder
    completes it with update_vprime, exactly once.
    """
    encoded_attributes = attr.ib() # type: Dict[str, Bn]
    m2 = attr.ib()                 # type: Bn
    a = attr.ib()                  # type: Bn
    e = attr.ib()                  # type: Bn
    v_prime = attr.ib()            # type: Bn
    finalized = attr.ib(default=False) # type: bool

    def update_vprime(self, v_prime: Bn) -> None:
        """Adds the holder's blinding exponent to the signature.

        Raises:
            CryptoInvalidState: the claim was already updated.
        """
        if self.finalized:
            raise CryptoInvalidState("The claim's v_prime was already updated.")
        self.v_prime = self.v_prime + v_prime
        self.finalized = True


@attr.s(slots=True)
class Claims:
    primary_claim = attr.ib() # type: PrimaryClaim

    def prepare_primary_claim(self, v_prime: Bn) -> None:
        self.primary_claim.update_vprime(v_prime)


@attr.s(slots=True)
class ProofInput:
    """A verifier's request. ts and seq_no are opaque to the proof algebra."""
    revealed_attrs = attr.ib(converter=set) # type: Set[str]
    predicates = attr.ib(converter=list)    # type: List[Predicate]
    ts = attr.ib(default=None)              # type: Optional[str]
    seq_no = attr.ib(default=None)          # type: Optional[str]


@attr.s(slots=True)
class ProofClaims:
    claims = attr.ib()                      # type: Claims
    revealed_attrs = attr.ib(converter=set) # type: Set[str]
    predicates = attr.ib(converter=list)    # type: List[Predicate]


@attr.s(slots=True)
class PrimaryEqualInitProof:
    a_prime = attr.ib()            # type: Bn
    t = attr.ib()                  # type: Bn
    etilde = attr.ib()             # type: Bn
    eprime = attr.ib()             # type: Bn
    vtilde = attr.ib()             # type: Bn
    vprime = attr.ib()             # type: Bn
    mtilde = attr.ib()             # type: Dict[str, Bn]
    m1_tilde = attr.ib()           # type: Bn
    m2_tilde = attr.ib()           # type: Bn
    unrevealed_attrs = attr.ib()   # type: Set[str]
    revealed_attrs = attr.ib()     # type: Set[str]
    encoded_attributes = attr.ib() # type: Dict[str, Bn]
    m1 = attr.ib()                 # type: Bn
    m2 = attr.ib()                 # type: Bn
    state = attr.ib(default=ProofState.COMMITTED) # type: ProofState

    def as_c_list(self) -> List[Bn]:
        return [self.a_prime]

    def as_tau_list(self) -> List[Bn]:
        return [self.t]


@attr.s(slots=True)
class PrimaryPredicateGEInitProof:
    """Commitment phase of a GE proof.

    Keys of u, u_tilde and t are "0".."3"; r, r_tilde and t also have DELTA.
    c_list is [t_0..t_3, t_DELTA] and tau_list has six values, both built once.
    """
    c_list = attr.ib()      # type: List[Bn]
    tau_list = attr.ib()    # type: List[Bn]
    u = attr.ib()           # type: Dict[str, Bn]
    u_tilde = attr.ib()     # type: Dict[str, Bn]
    r = attr.ib()           # type: Dict[str, Bn]
    r_tilde = attr.ib()     # type: Dict[str, Bn]
    alpha_tilde = attr.ib() # type: Bn
    predicate = attr.ib()   # type: Predicate
    t = attr.ib()           # type: Dict[str, Bn]
    state = attr.ib(default=ProofState.COMMITTED) # type: ProofState

    def as_c_list(self) -> List[Bn]:
        return self.c_list

    def as_tau_list(self) -> List[Bn]:
        return self.tau_list


PrimaryPrecicateGEInitProof = PrimaryPredicateGEInitProof


@attr.s(slots=True)
class PrimaryInitProof:
    eq_proof = attr.ib()  # type: PrimaryEqualInitProof
    ge_proofs = attr.ib() # type: List[PrimaryPredicateGEInitProof]

    def as_c_list(self) -> List[Bn]:
        c_list = self.eq_proof.as_c_list()
        for ge_proof in self.ge_proofs:
            c_list.extend(ge_proof.as_c_list())
        return c_list

    def as_tau_list(self) -> List[Bn]:
        tau_list = self.eq_proof.as_tau_list()
        for ge_proof in self.ge_proofs:
            tau_list.extend(ge_proof.as_tau_list())
        return tau_list


@attr.s(slots=True)
class InitProof:
    primary_init_proof = attr.ib() # type: PrimaryInitProof


@attr.s(slots=True)
class PrimaryEqualProof:
    revealed_attr_names = attr.ib(converter=set) # type: Set[str]
    a_prime = attr.ib() # type: Bn
    e = attr.ib()       # type: Bn
    v = attr.ib()       # type: Bn
    m = attr.ib()       # type: Dict[str, Bn]
    m1 = attr.ib()      # type: Bn
    m2 = attr.ib()      # type: Bn


@attr.s(slots=True)
class PrimaryPredicateGEProof:
    u = attr.ib()         # type: Dict[str, Bn]
    r = attr.ib()         # type: Dict[str, Bn]
    mj = attr.ib()        # type: Bn
    alpha = attr.ib()     # type: Bn
    t = attr.ib()         # type: Dict[str, Bn]
    predicate = attr.ib() # type: Predicate


@attr.s(slots=True)
class PrimaryProof:
    eq_proof = attr.ib()  # type: PrimaryEqualProof
    ge_proofs = attr.ib() # type: List[PrimaryPredicateGEProof]


@attr.s(slots=True)
class Proof:
    primary_proof = attr.ib() # type: PrimaryProof


@attr.s(slots=True)
class FullProof:
    """A presentation: one Proof per schema key, all answering c_hash.

    Attributes:
        c_hash (Bn): the shared Fiat-Shamir challenge
        schema_keys (SchemaKey[]): credential of each proof
        proofs (Proof[]): response phase of each credential
        c_list (Bn[]): commitments of every sub-proof, in hashing order
        revealed_attrs (Dict[str, Bn][]): encoded revealed values of each proof
    """
    c_hash = attr.ib()         # type: Bn
    schema_keys = attr.ib()    # type: List[SchemaKey]
    proofs = attr.ib()         # type: List[Proof]
    c_list = attr.ib()         # type: List[Bn]
    revealed_attrs = attr.ib() # type: List[Dict[str, Bn]]
