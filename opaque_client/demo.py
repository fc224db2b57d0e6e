"""OPAQUE registration demo against an in-process stub server."""

from .crypto import rand_bytes
from .client import RegistrationClient
from .envelope import open_envelope, recover_envelope_key
from .keys import generate_x25519_keypair
from .oprf import blind, evaluate, generate_key
from .types import (
    ENVELOPE_PLAINTEXT_SIZE,
    MAC_SIZE,
    SALT_SIZE,
    RegistrationRecord,
    RegistrationRequest,
    RegistrationResponse,
)

# Interactive-grade Argon2id cost, kept small for the demo
DEMO_OPS_LIMIT = 2
DEMO_MEM_LIMIT = 1 << 16


def main():
    """Run a full registration and re-open the envelope."""
    print("=== OPAQUE Registration Demo (Python) ===\n")

    # Server long-term material
    print("Server generating OPRF key and X25519 key-exchange keypair...")
    oprf_key, oprf_public_key = generate_key()
    server_public_key, _server_secret_key = generate_x25519_keypair()
    salt = rand_bytes(SALT_SIZE)

    username = "alice"
    password = "correct horse battery staple"

    with RegistrationClient() as client:
        print(f"\nClient starting registration for '{username}'...")
        request = client.start(username, password)
        wire = request.to_json()
        print(f"  Registration-start message: {len(wire)} bytes")
        print(f"  Blinded challenge: {request.challenge.hex()[:40]}...")

        # Server evaluates the blinded element; it never sees the password
        received = RegistrationRequest.from_json(wire)
        response = RegistrationResponse(
            response=evaluate(oprf_key, received.challenge),
            oprf_public_key=oprf_public_key,
            server_public_key=server_public_key,
            hash_ops_limit=DEMO_OPS_LIMIT,
            hash_mem_limit=DEMO_MEM_LIMIT,
            hash_salt=salt,
        )

        print("Client finishing registration...")
        record = client.register_response(RegistrationResponse.from_json(response.to_json()))

    stored = RegistrationRecord.from_json(record.to_json())
    print(f"  Public key: {stored.public_key.hex()}")
    print(f"  Envelope ciphertext: {len(stored.envelope.ciphertext)} bytes "
          f"({ENVELOPE_PLAINTEXT_SIZE} + {MAC_SIZE} MAC)")
    print(f"  Envelope nonce: {stored.envelope.nonce.hex()}")
    print(f"✓ Client state: {client.state.value}")

    # Later, the client re-derives the key with a fresh blind and opens the envelope
    print("\n--- Envelope Recovery ---")
    challenge, r = blind(password.encode())
    login_response = RegistrationResponse(
        response=evaluate(oprf_key, challenge),
        oprf_public_key=oprf_public_key,
        server_public_key=server_public_key,
        hash_ops_limit=DEMO_OPS_LIMIT,
        hash_mem_limit=DEMO_MEM_LIMIT,
        hash_salt=salt,
    )
    with recover_envelope_key(password.encode(), login_response, r) as key:
        contents = open_envelope(stored.envelope, key, expected_public_key=stored.public_key)

    assert contents.server_public_key == server_public_key, "Server key mismatch!"
    print("✓ Envelope opened with the re-derived key")
    print(f"✓ Recovered secret key matches public key {contents.user_public_key.hex()[:16]}...")
    contents.wipe()

    print("\n=== Demo Complete ===")


if __name__ == "__main__":
    main()
