"""
Scripted stand-ins for the UI driver and the decision oracle.

Both fakes satisfy the ``UIDriver`` / ``Oracle`` protocols so that the
exploration loop can be exercised without a browser or a model.
"""
