"""
Activated rule package.

Defines the activated rule model, the codec between generic records and
ActivatedRule values, and the differ that turns two member lists into an
ordered list of insert/delete updates.

Modules of interest:
- models: ActivatedRule, RuleGroup and RuleGroupUpdate types.
- codec: encode/decode between records and ActivatedRule.
- differ: Set difference producing deletes first, then inserts.
"""
