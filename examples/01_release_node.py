"""Release a DigitalOcean build node.

Demonstrates the teardown path end to end:
- scuttle.toml is applied process-wide: clouds, destroy settings and log sinks
- A node is registered for a droplet that already exists
- Terminating the node returns at once; the droplet is destroyed in the background

Expects a scuttle.toml like:

    [clouds.do-east]
    type = "digitalocean"
    credential_id = "do-token"

    [logging]
    level = "DEBUG"
    file = ""

and the token in SCUTTLE_CREDENTIAL_DO_TOKEN (or DIGITALOCEAN_TOKEN).
Droplets that could not be destroyed are listed in .scuttle/orphans.log.
"""

import sys

import scuttle as sc

if __name__ == "__main__":
    droplet_id = int(sys.argv[1])
    tracker = sc.ActivityTracker()
    inventory = sc.Inventory()

    with sc.bootstrap():
        # no registry or coordinator given: the node uses the ones bootstrap installed
        node = sc.ProvisionedNode(
            sc.ProvisioningId(cloud_name="do-east", template_name="example"),
            cloud_name="do-east",
            name=f"example-{droplet_id}",
            node_description="example build node",
            droplet_id=droplet_id,
            private_key="",
            remote_admin=None,
            remote_fs="/root/build",
            retention_strategy=sc.IdleRetentionStrategy(),
            tracker=tracker,
        )
        inventory.add(node)
        print(f"Node {node.name} logs in as {node.effective_remote_admin}")

        node.terminate()
        print(f"Node state: {node.state}, nodes left: {len(inventory)}")
        # leaving the block waits for the background destroy

    activity = tracker.get(node.provisioning_id)
    if activity is not None:
        for note in activity.attachments:
            print(f"{activity.current_phase.name} {note.level}: {note.title}")
