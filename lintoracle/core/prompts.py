"""Prompt construction for the oracle conversation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from lintoracle.core.oracle import ChatMessage

if TYPE_CHECKING:
    from lintoracle.core.source_file import SourceFile
    from lintoracle.rules.base_rule import Rule, RuleExample

__all__ = [
    "stringify_rule_for_model",
    "stringify_rule_violation_schema_for_model",
    "stringify_example_output_for_model",
    "build_lint_messages",
    "build_retry_message",
]


def _fence(example: RuleExample) -> str:
    return f"```{example.language or ''}\n{example.code}\n```\n"


def stringify_rule_for_model(rule: Rule) -> str:
    parts = [f"# RULE {rule.name}", "", rule.display_title, ""]
    if rule.description:
        parts += [rule.description, ""]
    if rule.negative_examples:
        parts += [
            "## Incorrect Examples",
            "",
            "These are examples of bad code snippets which would VIOLATE this rule if they appear in the SOURCE.",
            "",
        ]
        parts += [_fence(e) for e in rule.negative_examples]
    if rule.positive_examples:
        parts += [
            "## Correct Examples",
            "",
            "These are examples of good code snippets which conform to this rule and should be ignored in the SOURCE.",
            "",
        ]
        parts += [_fence(e) for e in rule.positive_examples]
    return "\n".join(parts)


def stringify_rule_violation_schema_for_model(rule: Rule, file: SourceFile) -> str:
    return f"""```ts
interface RULE_VIOLATION {{
  // The name of the RULE which this `codeSnippet` violates.
  ruleName: string

  // The offending code snippet which fails to conform to the given RULE. CODE SNIPPETS MUST BE SHORT and should include an ellipsis "..." if they would be more than 10 lines of code.
  codeSnippet: string

  // Where this rule violation's `codeSnippet` comes from. If it comes from the RULE {rule.name} examples, then use "examples". If it comes from the SOURCE code "{file.file_relative_path}", then use "source".
  codeSnippetSource: "examples" | "source"

  // An explanation of why this code snippet VIOLATES the RULE. Think step-by-step when describing your reasoning.
  reasoning: string

  // Whether or not this `codeSnippet` violates the RULE. If this `codeSnippet` does VIOLATE the RULE, then `violation` should be `true`. If the `codeSnippet` conforms to the RULE correctly or does not appear in the SOURCE, then `violation` should be `false`.
  violation: boolean

  // Your confidence that the `codeSnippet` VIOLATES the RULE.
  confidence: "low" | "medium" | "high"
}}
```"""


def stringify_example_output_for_model(rule: Rule) -> str:
    return f"""# EXPLANATION

<step-by-step reasoning about the SOURCE>

# VIOLATIONS

```json
[
  {{
    "ruleName": "{rule.name}",
    "codeSnippet": "...",
    "codeSnippetSource": "source",
    "reasoning": "...",
    "violation": true,
    "confidence": "high"
  }}
]
```"""


def build_lint_messages(file: SourceFile, rule: Rule) -> list[ChatMessage]:
    instructions = f"""# INSTRUCTIONS

You are an expert senior software engineer who makes sure source code conforms to project-specific guidelines and best practices. You will be given a RULE with a description of the RULE's intent and some positive examples where the RULE is used correctly and some negative examples where the RULE is VIOLATED.

Your task is to take the given SOURCE code and determine whether any portions of it VIOLATE the RULE's intent. Accuracy is important, so think step-by-step and include `reasoning` and `confidence` for every RULE_VIOLATION.

{stringify_rule_for_model(rule)}

---

Violations are reported as RULE_VIOLATION objects:

{stringify_rule_violation_schema_for_model(rule, file)}

Respond with two markdown sections: an EXPLANATION section with your reasoning, followed by a VIOLATIONS section holding a single json code block with an array of RULE_VIOLATION objects (use an empty array if the SOURCE has no violations). For example:

{stringify_example_output_for_model(rule)}
"""
    if file.partial_content is not None:
        source = (
            f"# SOURCE {file.file_name}\n\nOnly the portions of the file relevant to this RULE are shown.\n\n"
            f"```{file.language}\n{file.partial_content}\n```"
        )
    else:
        source = f"# SOURCE {file.file_name}\n\n```{file.language}\n{file.content}\n```"
    return [ChatMessage.system(instructions), ChatMessage.user(source)]


def build_retry_message(error: Exception) -> ChatMessage:
    return ChatMessage.user(
        f"{error}\n\nPlease respond again with the EXPLANATION and VIOLATIONS sections, "
        "making sure the VIOLATIONS section contains a single json code block with an array of RULE_VIOLATION objects."
    )
