"""
Issuer side of CL credentials: key generation and blind issuance.

The issuer signs the holder's blinded link secret commitment U together with
the attributes it knows:
    Q = z / (U * s^v'' * rctxt^m2 * prod(r[k]^m[k]))
    a = Q^(e^-1 mod p'q')
The holder completes the exponent v = v' + v'' locally (see
PrimaryClaim.update_vprime), so the issuer never learns the final signature.

The SecretKey only lives in this module. Proof construction and verification
never receive it.

Example:
    >>> schema = Schema("degree", "1.0", {"age", "name"})
    >>> pk, sk = generate_keys(schema, prime_bits=256)
    >>> sorted(pk.r)
    ['age', 'name']
    >>> issuer = Issuer(schema, pk, sk)
"""

from __future__ import annotations

import logging
from hashlib import sha256
from typing import Dict, Tuple

import attr
from petlib.bn import Bn

from . import config
from .datatypes import ClaimRequest, PrimaryClaim, PublicKey, Schema
from .errors import CryptoInvalidData, CryptoInvalidState
from .helpers import (
    bn_rand,
    generate_prime_in_range,
    generate_safe_prime,
    mod_div,
    mod_inverse,
    mod_pow,
    random_qr,
)


logger = logging.getLogger(__name__)


@attr.s(slots=True)
class SecretKey:
    """Factors of the issuer's modulus, p = 2p'+1 and q = 2q'+1."""
    p = attr.ib() # type: Bn
    q = attr.ib() # type: Bn

    def group_order(self) -> Bn:
        """Order of the quadratic residues modulo n, p'q'."""
        return ((self.p - 1) // 2) * ((self.q - 1) // 2)


def generate_keys(schema: Schema, prime_bits: int = config.LARGE_PRIME) -> Tuple[PublicKey, SecretKey]:
    """Generate an issuer key pair for schema.

    Args:
        schema (Schema): one base r[k] is generated for every attribute.
        prime_bits (int): size of the safe primes p and q.
    Returns:
        (PublicKey, SecretKey)
    """
    p = generate_safe_prime(prime_bits)
    q = generate_safe_prime(prime_bits)
    while q == p:
        q = generate_safe_prime(prime_bits)

    sk = SecretKey(p, q)
    n = p * q
    order = sk.group_order()
    s = random_qr(n)

    def random_base() -> Bn:
        return mod_pow(s, (order - 2).random() + 2, n)

    pk = PublicKey(
        n=n,
        s=s,
        rms=random_base(),
        r={name: random_base() for name in sorted(schema.attribute_names)},
        rctxt=random_base(),
        z=random_base(),
    )
    logger.info(
        "Generated issuer key for schema %s %s (%d bit modulus)",
        schema.name, schema.version, n.num_bits()
    )
    return pk, sk


def context_attribute(user_id: str) -> Bn:
    """m2, the holder specific attribute derived from its user id."""
    return Bn.from_binary(sha256(user_id.encode("utf8")).digest())


def issue_primary_claim(
        secret_key: SecretKey,
        public_key: PublicKey,
        schema: Schema,
        claim_request: ClaimRequest,
        encoded_attributes: Dict[str, Bn]
    ) -> PrimaryClaim:
    """Sign the holder's blinded request and the encoded attributes.

    Errors:
        CryptoInvalidState: an attribute is not part of the schema or the key.
        CryptoInvalidData: a schema attribute has no value, or u is out of range.
    Returns:
        PrimaryClaim: the claim, with the issuer's part of v_prime
    """
    unknown = set(encoded_attributes) - set(schema.attribute_names)
    if unknown:
        raise CryptoInvalidState(f"Attributes {sorted(unknown)} are not in schema {schema.name}.")
    if set(public_key.r) != set(schema.attribute_names):
        raise CryptoInvalidState(f"The public key does not match schema {schema.name}.")
    missing = set(schema.attribute_names) - set(encoded_attributes)
    if missing:
        raise CryptoInvalidData(f"Attributes {sorted(missing)} have no value.")

    n = public_key.n
    u = claim_request.u
    if not (0 < u < n):
        raise CryptoInvalidData("The claim request's u is out of range.")

    m2 = context_attribute(claim_request.user_id)

    e_start = Bn(2).pow(config.LARGE_E_START)
    e_end = e_start + Bn(2).pow(config.LARGE_E_END_RANGE)
    e = generate_prime_in_range(e_start, e_end)

    v_prime_prime = Bn(2).pow(config.LARGE_VPRIME_PRIME - 1) + bn_rand(config.LARGE_VPRIME_PRIME - 1)

    rx = u.mod_mul(mod_pow(public_key.s, v_prime_prime, n), n)
    rx = rx.mod_mul(mod_pow(public_key.rctxt, m2, n), n)
    for name in sorted(encoded_attributes):
        rx = rx.mod_mul(mod_pow(public_key.r[name], encoded_attributes[name], n), n)

    q = mod_div(public_key.z, rx, n)
    a = mod_pow(q, mod_inverse(e, secret_key.group_order()), n)

    logger.info("Issued claim on schema %s %s", schema.name, schema.version)
    return PrimaryClaim(
        encoded_attributes=dict(encoded_attributes),
        m2=m2,
        a=a,
        e=e,
        v_prime=v_prime_prime,
    )


class Issuer:
    """Issues claims of one schema.

    Attributes:
        schema (Schema): the schema of issued claims
        public (PublicKey): issuer's public key
        private (SecretKey): issuer's secret key
    """

    __slots__ = ("schema", "public", "private")

    def __init__(self, schema: Schema, public: PublicKey, private: SecretKey):
        self.schema = schema
        self.public = public
        self.private = private

    @classmethod
    def new(cls, schema: Schema, prime_bits: int = config.LARGE_PRIME) -> Issuer:
        """An issuer with a fresh key pair."""
        public, private = generate_keys(schema, prime_bits)
        return cls(schema, public, private)

    def issue_primary_claim(
            self,
            claim_request: ClaimRequest,
            encoded_attributes: Dict[str, Bn]
        ) -> PrimaryClaim:
        return issue_primary_claim(
            self.private,
            self.public,
            self.schema,
            claim_request,
            encoded_attributes
        )


def main():
    import doctest
    doctest.testmod(verbose=True)


if __name__ == "__main__":
    main()
