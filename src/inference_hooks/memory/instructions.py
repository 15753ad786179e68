"""Canonical texts of the session memory system.

``DEFAULT_MEMORY_INSTRUCTIONS`` is the content of the protected key. It is
also the reference for the integrity check, so editing it changes what
counts as a corrupted protected entry.
"""

PROTECTED_KEY = "memory_instruction_summary"

_MEMORY_FACTS = """\
1. The total memory quota is EXACTLY 16,777,216 bytes (16 megabytes)
2. One kilobyte (KB) = 1,024 bytes
3. One megabyte (MB) = 1,024 KB = 1,048,576 bytes
4. 16 MB = 16 * 1,048,576 = 16,777,216 bytes (NOT 16,384 bytes, which would be only 16 KB)
5. Each key-value pair typically uses less than 100 bytes of memory
6. You would need over 150,000 keys to fill the memory
7. ONLY suggest deleting keys when usage exceeds 90% (>15,099,494 bytes)
8. If unsure about memory management, use {"memory_command": "get_deletion_recommendation"}"""

_MEMORY_COMMANDS = """\
For quota: {"memory_command": "get_quota"}
For usage: {"memory_command": "get_usage"}
For keys: {"memory_command": "list_keys"}
For key count: {"memory_command": "count_keys"}
For checking a key: {"memory_command": {"op": "check_key", "key": "name"}}
For getting a value: {"memory_command": {"op": "get_key", "key": "name"}}
For setting a value: {"memory_command": {"op": "set_key", "key": "name", "value": "Luna"}}
For deleting a key: {"memory_command": {"op": "del_key", "key": "name"}}
For memory summary: {"memory_command": "get_memory_summary"}
To refresh memory rules: {"memory_command": "refresh_memory_rules"}
For deletion advice: {"memory_command": "get_deletion_recommendation"}
For memory facts: {"memory_command": "get_memory_facts"}
To verify memory integrity: {"memory_command": "verify_memory_integrity"}
To restore memory instructions: {"memory_command": "restore_memory_instructions"}"""

_CRITICAL_RULES = """\
1. ONLY use memory commands when the user specifically asks about memory or requests to store/retrieve information
2. For general conversation ("hello", "how are you", etc.), DO NOT use any memory commands
3. NEVER manipulate memory (set/delete keys) unless the user explicitly requests it
4. ALWAYS use the EXACT values returned in memory responses - do not modify or round the numbers
5. Use only ONE memory command per question
6. Memory is SESSION-ONLY - it does NOT persist across different conversations
7. If asked about persistence, clearly explain that memory is RESET when the conversation ends
8. For memory usage questions, ALWAYS use "get_usage" and report the exact bytes from the response
9. For questions about deleting keys, ALWAYS use "get_deletion_recommendation"
10. If you're ever unsure about memory sizes or usage, use "get_memory_facts"
11. NEVER attempt to modify or delete the "memory_instruction_summary" key - it is protected
12. If you find the "memory_instruction_summary" key is missing, use "restore_memory_instructions\""""

_HOW_TO_TALK = """\
1. When a user asks about memory, use ONE appropriate command
2. After using a command, read the JSON response carefully
3. Report the EXACT values from the response - do not round or estimate
4. For memory usage, ALWAYS first issue the get_usage command to get fresh data
5. Always clarify that memory only lasts for the current session
6. Remember that memory usage is TINY compared to quota - a few KB is negligible with a 16MB quota
7. After any memory operation, remind yourself of the 90% threshold rule - ONLY suggest key deletion when usage exceeds 90%
8. Always include the memory status assessment in your memory-related responses"""

_PREAMBLE = """\
You have access to a key-value memory system that operates ONLY within the current session.
This memory is reset when the user starts a new conversation - it does NOT persist across sessions.
Only use memory commands when the user specifically asks about memory or wants to store/retrieve information.
IMPORTANT: These instructions are the source of truth about memory behavior. If you feel uncertain about memory usage rules, re-read these instructions."""


def _indent(block: str) -> str:
    return "\n".join(f"    {line}" if line else "" for line in block.splitlines())


DEFAULT_MEMORY_INSTRUCTIONS = (
    "{\n"
    '    "MEMORY SYSTEM INSTRUCTIONS":\n'
    f"{_indent(_PREAMBLE)}\n\n"
    "    MEMORY FACTS - THE MOST IMPORTANT INFORMATION:\n"
    f"{_indent(_MEMORY_FACTS)}\n\n"
    "    MEMORY COMMANDS:\n"
    f"{_indent(_MEMORY_COMMANDS)}\n\n"
    "    CRITICAL RULES:\n"
    f"{_indent(_CRITICAL_RULES)}\n"
    "}\n"
)

MEMORY_INJECTION_PROMPT = (
    "[MEMORY SYSTEM INSTRUCTIONS]\n\n"
    f"{_PREAMBLE}\n\n"
    "MEMORY FACTS - THE MOST IMPORTANT INFORMATION:\n"
    f"{_MEMORY_FACTS}\n\n"
    "MEMORY COMMANDS:\n"
    f"{_MEMORY_COMMANDS}\n\n"
    "CRITICAL RULES:\n"
    f"{_CRITICAL_RULES}\n\n"
    "HOW TO TALK ABOUT MEMORY:\n"
    f"{_HOW_TO_TALK}\n\n"
)
