from hashlib import sha256

import attr
import pytest

from petlib.bn import Bn

from clcred.datatypes import *
from clcred.errors import CryptoInvalidData, CryptoInvalidState
from clcred.helpers import bn_rand
from clcred.issuer import Issuer, context_attribute, generate_keys
from clcred.prover import Prover, verify_primary_claim


def test_keys_match_schema(issuer, degree_schema):
    pk = issuer.public
    assert set(pk.r) == set(degree_schema.attribute_names)
    assert issuer.private.p * issuer.private.q == pk.n
    assert pk.n.num_bits() >= 500
    for base in [pk.s, pk.rms, pk.rctxt, pk.z] + list(pk.r.values()):
        assert 0 < base < pk.n


def test_attribute_encoding():
    assert Attribute("age", "25", False).encoded() == Bn(25)
    digest = sha256("Alex".encode("utf8")).digest()
    assert Attribute("name", "Alex", True).encoded() == Bn.from_binary(digest)

    with pytest.raises(CryptoInvalidData):
        Attribute("name", "Alex", False).encoded()


def test_issued_claim_is_valid(issuer, prover, degree_claims):
    claim = degree_claims.primary_claim
    assert claim.finalized
    assert claim.m2 == context_attribute("alex@example.org")
    assert set(claim.encoded_attributes) == {"age", "name"}
    assert verify_primary_claim(issuer.public, claim, prover.master_secret)


def test_claim_is_bound_to_master_secret(issuer, prover, degree_claims):
    other = Prover()
    assert not verify_primary_claim(issuer.public, degree_claims.primary_claim, other.master_secret)


def test_process_claim_with_wrong_init_data(issuer, prover):
    init_data = prover.create_claim_init_data(issuer.public)
    request = prover.create_claim_request("alex@example.org", init_data)
    claim = issuer.issue_primary_claim(request, {"age": Bn(25), "name": Bn(1)})

    other_init_data = prover.create_claim_init_data(issuer.public)
    with pytest.raises(CryptoInvalidData):
        prover.process_claim(issuer.public, Claims(claim), other_init_data)


def test_process_claim_twice_fails(issuer, prover, degree_claims):
    init_data = prover.create_claim_init_data(issuer.public)
    with pytest.raises(CryptoInvalidState):
        prover.process_claim(issuer.public, degree_claims, init_data)


def test_update_vprime_twice_fails():
    claim = PrimaryClaim({"age": Bn(25)}, Bn(7), Bn(11), Bn(13), Bn(100))
    claim.update_vprime(Bn(5))
    with pytest.raises(CryptoInvalidState):
        claim.update_vprime(Bn(5))
    assert claim.v_prime == Bn(105)


def test_update_vprime_is_additive():
    issuer_v_prime = bn_rand(2724)
    x = bn_rand(2128)
    y = bn_rand(2128)
    claim = PrimaryClaim({"age": Bn(25)}, Bn(7), Bn(11), Bn(13), issuer_v_prime)
    claim_x = attr.evolve(claim)
    claim_xy = attr.evolve(claim)

    claim_x.update_vprime(x)
    claim_xy.update_vprime(x + y)

    assert claim_x.v_prime + y == claim_xy.v_prime
    assert claim.v_prime == issuer_v_prime


def test_prepare_primary_claim():
    claims = Claims(PrimaryClaim({"age": Bn(25)}, Bn(7), Bn(11), Bn(13), Bn(100)))
    claims.prepare_primary_claim(Bn(1))
    assert claims.primary_claim.v_prime == Bn(101)
    assert claims.primary_claim.finalized


def test_issue_unknown_attribute_fails(issuer, prover):
    init_data = prover.create_claim_init_data(issuer.public)
    request = prover.create_claim_request("alex@example.org", init_data)
    with pytest.raises(CryptoInvalidState):
        issuer.issue_primary_claim(request, {"age": Bn(25), "name": Bn(1), "height": Bn(180)})


def test_issue_missing_attribute_fails(issuer, prover):
    init_data = prover.create_claim_init_data(issuer.public)
    request = prover.create_claim_request("alex@example.org", init_data)
    with pytest.raises(CryptoInvalidData):
        issuer.issue_primary_claim(request, {"age": Bn(25)})


def test_issue_with_mismatching_key_fails(issuer, prover, transcript_issuer):
    init_data = prover.create_claim_init_data(issuer.public)
    request = prover.create_claim_request("alex@example.org", init_data)
    wrong = Issuer(issuer.schema, transcript_issuer.public, transcript_issuer.private)
    with pytest.raises(CryptoInvalidState):
        wrong.issue_primary_claim(request, {"age": Bn(25), "name": Bn(1)})


def test_issue_invalid_request_fails(issuer):
    request = ClaimRequest("alex@example.org", issuer.public.n)
    with pytest.raises(CryptoInvalidData):
        issuer.issue_primary_claim(request, {"age": Bn(25), "name": Bn(1)})


def test_claims_from_different_issuers_are_not_interchangeable(issuer, transcript_issuer, prover, issue_claims):
    claims = issue_claims(
        transcript_issuer,
        prover,
        [Attribute("gpa", "3", False), Attribute("year", "2019", False), Attribute("student_id", "s-1", True)]
    )
    assert verify_primary_claim(transcript_issuer.public, claims.primary_claim, prover.master_secret)
    assert not verify_primary_claim(issuer.public, claims.primary_claim, prover.master_secret)


def test_generate_keys_for_single_attribute_schema():
    schema = Schema("membership", "1.0", ["member"])
    pk, sk = generate_keys(schema, prime_bits=128)
    assert list(pk.r) == ["member"]
    assert sk.group_order() * 4 < pk.n
