"""
Bytecode Heuristic Scanner
Coarse opcode-byte counts for contracts without verified source.

Single-byte matches across raw bytecode are noisy (push data, metadata),
so every finding here is informational and carries zero score.
"""

from typing import Dict, List

from models.contract import ContractInfo
from models.findings import AnalyzerResult, Finding, Severity

SOURCE = "Bytecode Analysis"

DELEGATECALL = "f4"
SELFDESTRUCT = "ff"
MAX_CONTRACT_KB = 24
ERC20_SELECTORS = {
    "a9059cbb": "transfer(address,uint256)",
    "095ea7b3": "approve(address,uint256)",
    "70a08231": "balanceOf(address)",
}


def _hex_body(bytecode: str) -> str:
    code = (bytecode or "").lower()
    return code[2:] if code.startswith("0x") else code


def opcode_counts(bytecode: str) -> Dict[str, int]:
    """Byte-aligned occurrence counts for every byte value"""
    body = _hex_body(bytecode)
    counts: Dict[str, int] = {}
    for i in range(0, len(body) - 1, 2):
        byte = body[i:i + 2]
        counts[byte] = counts.get(byte, 0) + 1
    return counts


def delegatecall_count(bytecode: str) -> int:
    return opcode_counts(bytecode).get(DELEGATECALL, 0)


def scan_bytecode(bytecode: str) -> List[Finding]:
    body = _hex_body(bytecode)
    counts = opcode_counts(body)
    findings = []

    delegatecalls = counts.get(DELEGATECALL, 0)
    if delegatecalls > 2:
        findings.append(Finding(
            "proxy_pattern", Severity.INFO,
            "Proxy pattern detected (delegatecall) - common in upgradeable contracts",
            SOURCE, f"Delegatecall count: {delegatecalls}", 0,
        ))

    selfdestructs = counts.get(SELFDESTRUCT, 0)
    if 0 < selfdestructs < 10:
        findings.append(Finding(
            "potential_selfdestruct", Severity.LOW,
            "Possible selfdestruct capability detected (common false positive)",
            SOURCE, f"Found {selfdestructs} occurrences - may be data, not actual selfdestruct", 0,
        ))

    size_kb = len(body) / 2 / 1024
    if size_kb > MAX_CONTRACT_KB:
        findings.append(Finding(
            "large_contract", Severity.LOW,
            f"Large contract ({size_kb:.1f}KB) - higher complexity", SOURCE, None, 0,
        ))

    if all(sel in body for sel in ERC20_SELECTORS):
        findings.append(Finding(
            "erc20_standard", Severity.INFO,
            "Standard ERC20 token functions detected", SOURCE,
            "Standard ERC20 interface detected", 0,
        ))

    return findings


async def analyze(contract: ContractInfo, reader) -> AnalyzerResult:
    code = await reader.get_code(contract.address)
    findings = scan_bytecode(code)
    return AnalyzerResult(
        score_delta=0,
        findings=tuple(findings),
        details={"bytecode_size": len(_hex_body(code)) // 2},
    )
