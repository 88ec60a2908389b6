import pytest

from clcred.datatypes import Attribute, Claims, Schema
from clcred.issuer import Issuer
from clcred.prover import Prover

# Small keys keep the tests fast. The protocol does not depend on the size.
TEST_PRIME_BITS = 256


@pytest.fixture(scope="session")
def degree_schema():
    return Schema("degree", "1.0", {"age", "name"})


@pytest.fixture(scope="session")
def issuer(degree_schema):
    return Issuer.new(degree_schema, prime_bits=TEST_PRIME_BITS)


@pytest.fixture(scope="session")
def transcript_schema():
    return Schema("transcript", "2.1", {"gpa", "year", "student_id"})


@pytest.fixture(scope="session")
def transcript_issuer(transcript_schema):
    return Issuer.new(transcript_schema, prime_bits=TEST_PRIME_BITS)


@pytest.fixture
def prover():
    return Prover()


@pytest.fixture
def issue_claims():
    """Runs the issuance protocol and returns the holder's processed Claims."""
    def issue(issuer, prover, attributes, user_id="alex@example.org"):
        init_data = prover.create_claim_init_data(issuer.public)
        request = prover.create_claim_request(user_id, init_data)
        claim = issuer.issue_primary_claim(request, Attribute.encode_all(attributes))
        claims = Claims(claim)
        prover.process_claim(issuer.public, claims, init_data)
        return claims
    return issue


@pytest.fixture
def degree_claims(issuer, prover, issue_claims):
    return issue_claims(issuer, prover, [Attribute("age", "25", False), Attribute("name", "Alex", True)])
