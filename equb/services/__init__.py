"""Engine services operating on the Group aggregate."""
