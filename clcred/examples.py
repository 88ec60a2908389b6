from petlib.bn import Bn

from clcred.datatypes import *
from clcred.issuer import *
from clcred.prover import *
from clcred.verifier import *
from clcred.pack import *


def issue_degree_claim(issuer, prover, age="25", name="Alex"):
    init_data = prover.create_claim_init_data(issuer.public)
    request = prover.create_claim_request("alex@example.org", init_data)
    attributes = [Attribute("age", age, False), Attribute("name", name, True)]
    claim = issuer.issue_primary_claim(request, Attribute.encode_all(attributes))
    claims = Claims(claim)
    prover.process_claim(issuer.public, claims, init_data)
    return claims


def presentation_example():
    # generating keys and wrappers
    schema = Schema("degree", "1.0", {"age", "name"})
    issuer = Issuer.new(schema, prime_bits=512)
    prover = Prover()
    key = schema.key("university")

    # Issuance
    claims = issue_degree_claim(issuer, prover)

    # Presentation: reveal the name, prove age >= 18
    verifier = Verifier({key: issuer.public})
    proof_input = ProofInput({"name"}, [Predicate("age", "GE", 18)])
    nonce = verifier.generate_nonce()
    proof = prover.present_proof(proof_input, {key: claims}, {key: issuer.public}, nonce)

    assert verifier.verify(proof, proof_input, nonce)
    print(proof.revealed_attrs)


def false_predicate_example():
    schema = Schema("degree", "1.0", {"age", "name"})
    issuer = Issuer.new(schema, prime_bits=512)
    prover = Prover()
    key = schema.key("university")
    claims = issue_degree_claim(issuer, prover, age="15")

    proof_input = ProofInput({"name"}, [Predicate("age", "GE", 18)])
    try:
        prover.present_proof(proof_input, {key: claims}, {key: issuer.public}, Bn(1))
    except CryptoInvalidData as e:
        print(e)


def pack_example():
    schema = Schema("degree", "1.0", {"age", "name"})
    issuer = Issuer.new(schema, prime_bits=512)
    prover = Prover()
    key = schema.key("university")
    claims = issue_degree_claim(issuer, prover)

    verifier = Verifier({key: unpackb(packb(issuer.public))})
    proof_input = ProofInput({"name"}, [Predicate("age", "GE", 18)])
    nonce = verifier.generate_nonce()
    proof = prover.present_proof(proof_input, {key: claims}, {key: issuer.public}, nonce)

    m1 = packb(proof)
    m2 = packb(proof_input)
    assert verifier.verify(unpackb(m1), unpackb(m2), nonce)


def main():
    presentation_example()
    false_predicate_example()
    pack_example()


if __name__ == "__main__":
    main()
