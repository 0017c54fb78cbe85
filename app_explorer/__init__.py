"""App Explorer package providing LLM-driven, crash-aware exploration of user interfaces.

An oracle (a language model) picks one action per screen from a compressed view of the UI, a
driver performs it, and the session records what happened: every step, the screens reached and
the transitions between them.

Key sub-modules:

elements.py            – Raw driver snapshots and the compressed Element / Hierarchy model.
semantic.py            – Rule-based element categorisation, intent and screen-type detection.
compressor.py          – Raw tree -> bounded, priority-ordered Hierarchy.
fixtures.py            – Fixture documents, field patterns, semantic field types, value provenance.
fixture_resolver.py    – Cascade that picks the value to type into an input field.
fingerprint.py         – Content-derived screen identity.
navigation.py          – Screen / transition graph on top of networkx.
decisions.py           – What the oracle answers: actions, alternatives, success probability.
verification.py        – Before/after comparison of a performed action.
explorer.py            – The exploration loop with crash detection and verified retries.
summary.py             – Coverage, session metrics, health score and insights.
interfaces.py          – UIDriver and Oracle protocols.
openai_oracle.py       – OpenAI chat-model oracle.
playwright_driver.py   – Playwright driver for browser-based apps.
"""
