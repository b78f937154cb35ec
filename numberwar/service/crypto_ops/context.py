from openfhe import *

from numberwar.config import CRYPTO_CONFIG


# ============================================================================
# OpenFHE Context & Parameters
# ============================================================================

# Carry propagation shifts bits one slot up
CARRY_ROTATION = -1


def create_openfhe_context(multiplicative_depth: int = None):
    """
    Create BFVrns context for bit-sliced euint8 arithmetic.

    Args:
        multiplicative_depth: Circuit depth; defaults to CRYPTO_CONFIG

    Returns:
        OpenFHE CryptoContext with PKE, KEYSWITCH and LEVELEDSHE enabled
    """
    parameters = CCParamsBFVRNS()

    # Prime with 2n | (t - 1) so packed encoding is available
    parameters.SetPlaintextModulus(CRYPTO_CONFIG["plain_modulus"])

    # One slot per bit
    parameters.SetBatchSize(CRYPTO_CONFIG["batch_size"])

    # a*b plus one level per carry round
    parameters.SetMultiplicativeDepth(
        multiplicative_depth or CRYPTO_CONFIG["multiplicative_depth"]
    )

    cc = GenCryptoContext(parameters)
    cc.Enable(PKESchemeFeature.PKE)
    cc.Enable(PKESchemeFeature.KEYSWITCH)
    cc.Enable(PKESchemeFeature.LEVELEDSHE)

    return cc


def generate_runtime_keys(cc):
    """
    Generate the runtime keypair with relinearization and rotation keys.

    Args:
        cc: CryptoContext

    Returns:
        KeyPair whose secret key never leaves the runtime
    """
    keypair = cc.KeyGen()
    cc.EvalMultKeyGen(keypair.secretKey)
    cc.EvalRotateKeyGen(keypair.secretKey, [CARRY_ROTATION])
    return keypair
