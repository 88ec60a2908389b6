"""Protocol constants. Sizes are bit lengths."""

# issuer key
LARGE_PRIME = 1024

# holder link secret and issuance blinding
LARGE_MASTER_SECRET = 256
LARGE_VPRIME = 2128
LARGE_VPRIME_PRIME = 2724

# signature exponent e is a prime in [2^LARGE_E_START, 2^LARGE_E_START + 2^LARGE_E_END_RANGE]
LARGE_E_START = 596
LARGE_E_END_RANGE = 119

# equality proof blinding
LARGE_ETILDE = 456
LARGE_VTILDE = 3060
LARGE_MVECT = 592

# GE proof blinding
LARGE_UTILDE = 592
LARGE_RTILDE = 672
LARGE_ALPHATILDE = 2787

LARGE_NONCE = 80

# number of squares in the decomposition of a GE delta
ITERATION = 4
DELTA = "DELTA"

PREDICATE_GE = "GE"
